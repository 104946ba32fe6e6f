"""Shared utilities for finbot CLI commands."""

import sys

from rich.console import Console

from finbot.bot import FinBot
from finbot.config import load_settings
from finbot.db.messages import MessageStore
from finbot.errors import StorageError

console = Console()


def _open_store() -> MessageStore:
    """Open the configured message store, or exit with an error."""
    settings = load_settings()
    try:
        return MessageStore.open(settings.database_path)
    except StorageError as e:
        console.print(f"[red]Cannot open database {settings.database_path}: {e}[/red]")
        sys.exit(1)


def _start_bot() -> FinBot:
    """Build a bot for one-shot outbound commands; exits if credentials are missing."""
    settings = load_settings()
    if not settings.has_credentials:
        console.print("[red]APP_ID and APP_SECRET must be set (environment or .env).[/red]")
        sys.exit(1)
    bot = FinBot(settings)
    try:
        bot.start()
    except StorageError as e:
        console.print(f"[red]Cannot open database {settings.database_path}: {e}[/red]")
        sys.exit(1)
    return bot
