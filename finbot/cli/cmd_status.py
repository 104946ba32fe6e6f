"""Status command."""

import asyncio

from rich.table import Table

from . import cli
from .shared import console


@cli.command()
def status():
    """Show finbot status."""
    async def _status():
        from finbot import __version__
        from finbot.config import load_settings, mask_secret
        from finbot.db.messages import MessageStore
        from finbot.errors import StorageError

        settings = load_settings()

        table = Table(title=f"finbot Status v{__version__}", show_header=False, padding=(0, 2))
        table.add_column("Key", style="bold")
        table.add_column("Value")

        table.add_row("Version", __version__)
        table.add_row("Environment", settings.app_env)
        table.add_row("Platform", settings.domain)
        if settings.has_credentials:
            table.add_row("App ID", mask_secret(settings.app_id))
        else:
            table.add_row("App ID", "[red]Not configured[/red]")
        table.add_row("HTTP", f"{settings.host}:{settings.port}")

        try:
            store = MessageStore.open(settings.database_path)
            total = await store.count()
            table.add_row("Database", f"[green]{settings.database_path}[/green]")
            table.add_row("Messages", str(total))
        except StorageError as e:
            table.add_row("Database", f"[red]Error: {e}[/red]")

        console.print(table)

    asyncio.run(_status())
