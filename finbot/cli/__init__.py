"""finbot CLI — command line interface."""

import click
from finbot import __version__
from .shared import console


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="finbot")
@click.pass_context
def cli(ctx):
    """finbot — Lark/Feishu chat-bot bridge"""
    if ctx.invoked_subcommand is None:
        _show_help()


def _show_help():
    """Show all available commands grouped by category."""
    console.print(f"[bold]finbot v{__version__}[/bold] — Lark/Feishu chat-bot bridge\n")

    groups = {
        "Usage": [
            ("start", "Start the bot (WebSocket + HTTP API)"),
            ("status", "Show configuration and store statistics"),
        ],
        "Messages": [
            ("messages history", "Show stored messages of a chat"),
            ("messages trim", "Keep only the most recent messages of a chat"),
        ],
        "Outbound": [
            ("chats", "List chats the bot has joined"),
            ("broadcast", "Send a message to every joined chat"),
        ],
    }

    for category, commands in groups.items():
        console.print(f"  [bold cyan]{category}[/bold cyan]")
        for name, desc in commands:
            console.print(f"    [bold]finbot {name:18s}[/bold] {desc}")
        console.print()

    console.print("[dim]Run 'finbot <command> --help' for details on a specific command.[/dim]")


# Import all command modules (registers commands onto cli group)
from . import cmd_start  # noqa: E402, F401
from . import cmd_status  # noqa: E402, F401
from . import cmd_messages  # noqa: E402, F401
from . import cmd_broadcast  # noqa: E402, F401


@cli.command(name="help", hidden=True)
def help_cmd():
    """Show all available commands."""
    _show_help()
