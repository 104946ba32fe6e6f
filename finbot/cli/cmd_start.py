"""Start command."""

import asyncio
import logging

import click

from . import cli
from .shared import console


@cli.command()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def start(debug):
    """Start the bot: Lark WebSocket channel plus HTTP API."""
    from finbot.config import load_settings
    from finbot.main import run, setup_logging

    settings = load_settings()
    setup_logging(settings)
    if debug:
        logging.getLogger("finbot").setLevel(logging.DEBUG)

    console.print("[bold blue]Starting finbot...[/bold blue]")
    asyncio.run(run(settings))
