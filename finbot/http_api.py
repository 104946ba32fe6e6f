"""HTTP surface: health check and outbound send triggers."""

import logging

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from . import __version__
from .broadcast import BroadcastDispatcher
from .errors import DispatchError

logger = logging.getLogger("finbot.http")

DEFAULT_BROADCAST_CONTENT = "helloworld"


def create_app(dispatcher: BroadcastDispatcher) -> FastAPI:
    """Build the FastAPI app with the dispatcher wired in from main.py."""

    app = FastAPI(title="finbot", version=__version__)

    @app.get("/health")
    async def health():
        return {"status": "ok", "message": "service is running"}

    @app.get("/api/send-message")
    async def send_message(content: str = DEFAULT_BROADCAST_CONTENT):
        """Send ``content`` to every chat the bot has joined."""
        try:
            report = await dispatcher.broadcast(content)
        except DispatchError as e:
            logger.error(f"Broadcast failed: {e}")
            return JSONResponse(
                {"code": 500, "message": "broadcast failed", "error": str(e)},
                status_code=500,
            )
        return {"code": 200, "message": "broadcast finished", "data": report.to_dict()}

    @app.get("/api/send-recent")
    async def send_recent(content: str = DEFAULT_BROADCAST_CONTENT):
        """Send ``content`` to whichever chat last messaged the bot."""
        result = await dispatcher.send_to_recent(content)
        if result is None:
            return JSONResponse(
                {"code": 404, "message": "no recent conversation"},
                status_code=404,
            )
        if not result.success:
            return JSONResponse(
                {"code": 502, "message": "send failed", "error": result.describe()},
                status_code=502,
            )
        return {"code": 200, "message": "message sent", "data": result.to_dict()}

    return app
