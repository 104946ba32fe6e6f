"""finbot — Main entry point."""

import asyncio
import logging
from typing import Optional

import uvicorn

from .bot import FinBot
from .channel import LarkChannel
from .config import FinbotSettings, load_settings, mask_secret
from .http_api import create_app

_log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger("finbot")


def setup_logging(settings: FinbotSettings):
    """Log to stderr, and to ``settings.log_file`` when configured."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file, encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=_log_format,
        handlers=handlers,
    )


async def run(settings: Optional[FinbotSettings] = None):
    """Main run loop: Lark channel in the background, HTTP server in front.

    Returns when the HTTP server exits (Ctrl+C / SIGTERM); the channel is
    then stopped, letting the in-flight event finish.
    """
    settings = settings or load_settings()

    if not settings.has_credentials:
        logger.critical("APP_ID and APP_SECRET must be set (environment or .env).")
        return

    logger.info(f"Starting Lark bot (app_id={mask_secret(settings.app_id)})")

    bot = FinBot(settings)
    bot.start()
    logger.info(f"Database ready: {settings.database_path}")

    channel = LarkChannel(settings, bot.router)
    server = uvicorn.Server(
        uvicorn.Config(
            create_app(bot.dispatcher),
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level.lower(),
        )
    )

    try:
        await channel.start()
        logger.info(f"HTTP server listening on port {settings.port}")
        logger.info(f"Broadcast: GET http://localhost:{settings.port}/api/send-message?content=...")
        await server.serve()
    except Exception as e:
        logger.critical(f"Fatal error: {type(e).__name__}: {e}", exc_info=True)
    finally:
        await channel.stop()
        logger.info("finbot stopped.")


def main():
    """Entry point."""
    settings = load_settings()
    setup_logging(settings)
    asyncio.run(run(settings))


if __name__ == "__main__":
    main()
