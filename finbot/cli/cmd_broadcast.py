"""Outbound commands: list joined chats, broadcast."""

import asyncio

import click
from rich.table import Table

from finbot.errors import DispatchError

from . import cli
from .shared import console, _start_bot


@cli.command()
def chats():
    """List chats the bot has joined."""
    async def _chats():
        bot = _start_bot()
        try:
            chat_ids = await bot.dispatcher.list_joined_conversations()
        except DispatchError as e:
            console.print(f"[red]{e}[/red]")
            raise SystemExit(1)
        for chat_id in chat_ids:
            console.print(chat_id)
        console.print(f"[dim]{len(chat_ids)} chat(s)[/dim]")

    asyncio.run(_chats())


@cli.command()
@click.argument("content", default="helloworld")
def broadcast(content):
    """Send CONTENT to every chat the bot has joined."""
    async def _broadcast():
        bot = _start_bot()
        try:
            report = await bot.dispatcher.broadcast(content)
        except DispatchError as e:
            console.print(f"[red]Broadcast failed: {e}[/red]")
            raise SystemExit(1)

        t = Table(title=f"Broadcast: {report.success}/{report.total} sent")
        t.add_column("Chat")
        t.add_column("Status")
        t.add_column("Error")
        for r in report.results:
            style = "green" if r["status"] == "success" else "red"
            t.add_row(r["chat_id"], f"[{style}]{r['status']}[/{style}]", r.get("error", ""))
        console.print(t)
        if report.failed:
            raise SystemExit(1)

    asyncio.run(_broadcast())
