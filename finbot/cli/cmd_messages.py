"""Stored message commands."""

import asyncio

import click
from rich.table import Table

from . import cli
from .shared import console, _open_store


@cli.group()
def messages():
    """Stored message commands."""
    pass


@messages.command("history")
@click.argument("chat_id")
@click.option("--limit", "-n", default=50, help="Max messages (non-positive means 50)")
def messages_history(chat_id, limit):
    """Show the most recent messages of CHAT_ID, oldest first."""
    async def _history():
        store = _open_store()
        rows = await store.list_by_conversation(chat_id, limit)
        if not rows:
            console.print(f"[dim]No messages for {chat_id}.[/dim]")
            return

        t = Table(title=f"Messages in {chat_id}")
        t.add_column("Time")
        t.add_column("Sender")
        t.add_column("Type")
        t.add_column("Content")
        for m in rows:
            content = m.body[:60] + "..." if len(m.body) > 60 else m.body
            t.add_row(m.created_at.strftime("%Y-%m-%d %H:%M:%S"), m.sender_kind, m.kind, content)
        console.print(t)

    asyncio.run(_history())


@messages.command("trim")
@click.argument("chat_id")
@click.option("--keep", "-k", default=50, show_default=True, help="Messages to keep (0 deletes all)")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
def messages_trim(chat_id, keep, yes):
    """Delete all but the KEEP most recent messages of CHAT_ID."""
    if not yes and not click.confirm(f"Trim {chat_id} to its {keep} most recent messages?"):
        console.print("[dim]Aborted.[/dim]")
        return

    async def _trim():
        store = _open_store()
        deleted = await store.trim_to_recent(chat_id, keep)
        console.print(f"[green]✓ Deleted {deleted} message(s) from {chat_id}[/green]")

    asyncio.run(_trim())
