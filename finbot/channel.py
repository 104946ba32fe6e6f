"""Lark channel — WebSocket long connection feeding the event router.

The SDK delivers events on its own thread. They are handed to the
asyncio loop and consumed by a single task, one event at a time and in
delivery order. After ``stop()`` no new events are accepted; the event
being handled runs to completion and anything still queued is dropped.
"""

import asyncio
import logging
import threading
import time
from typing import Any, Optional

import lark_oapi as lark

from .communication.lark import resolve_domain
from .config import FinbotSettings, mask_secret
from .router import EventRouter, InboundEvent

logger = logging.getLogger("finbot.channel")

_RECONNECT_DELAY = 5


class LarkChannel:
    """Inbound side of the bot."""

    def __init__(self, settings: FinbotSettings, router: EventRouter):
        self.settings = settings
        self.router = router
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue] = None
        self._consumer: Optional[asyncio.Task] = None
        self._accepting = False
        self._ws_client: Any = None
        self._ws_thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._accepting

    # ============================================================
    # LIFECYCLE
    # ============================================================

    async def start(self):
        """Start the consumer task and the WebSocket connection."""
        await self.start_consumer()

        self._ws_client = lark.ws.Client(
            self.settings.app_id,
            self.settings.app_secret,
            event_handler=self.build_event_handler(),
            log_level=lark.LogLevel.INFO,
            domain=resolve_domain(self.settings.domain),
        )
        self._ws_thread = threading.Thread(target=self._run_ws, name="lark-ws", daemon=True)
        self._ws_thread.start()
        logger.info(f"Lark channel started (app_id={mask_secret(self.settings.app_id)}), waiting for messages...")

    async def start_consumer(self):
        """Start only the event-consuming task (no network)."""
        if self._accepting:
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._accepting = True
        self._consumer = asyncio.create_task(self._consume())

    async def stop(self):
        """Stop accepting events and wait for the in-flight event to finish."""
        if not self._accepting:
            return
        self._accepting = False

        dropped = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            dropped += 1
        if dropped:
            logger.warning(f"Dropped {dropped} queued event(s) on shutdown")

        self._queue.put_nowait(None)
        if self._consumer:
            await self._consumer
            self._consumer = None

        stop_ws = getattr(self._ws_client, "stop", None)
        if stop_ws:
            try:
                stop_ws()
            except Exception as e:
                logger.warning(f"Error stopping WebSocket client: {e}")
        logger.info("Lark channel stopped")

    def _run_ws(self) -> None:
        while self._accepting:
            try:
                self._ws_client.start()
            except Exception as e:
                logger.warning(f"Lark WebSocket error: {e}")
            if self._accepting:
                time.sleep(_RECONNECT_DELAY)

    # ============================================================
    # INBOUND
    # ============================================================

    def build_event_handler(self) -> Any:
        return (
            lark.EventDispatcherHandler.builder("", "", lark.LogLevel.WARNING)
            .register_p2_im_message_receive_v1(self._on_message_sync)
            .build()
        )

    def _on_message_sync(self, data: Any) -> None:
        """SDK callback (WebSocket thread). Always returns normally."""
        try:
            event = InboundEvent.from_lark(data)
        except Exception as e:
            logger.error(f"Could not read message event: {e}")
            return
        self.submit_threadsafe(event)

    def submit_threadsafe(self, event: InboundEvent) -> bool:
        """Queue an event from any thread. Returns False once stopped."""
        if not self._accepting or self._loop is None:
            logger.warning(f"Channel stopped, event {event.platform_message_id} ignored")
            return False
        self._loop.call_soon_threadsafe(self._enqueue, event)
        return True

    def _enqueue(self, event: InboundEvent) -> bool:
        if not self._accepting:
            logger.warning(f"Channel stopped, event {event.platform_message_id} ignored")
            return False
        self._queue.put_nowait(event)
        return True

    async def _wait_idle(self):
        """Wait until every queued event has been handled."""
        if self._queue is not None:
            await self._queue.join()

    async def _consume(self):
        while True:
            event = await self._queue.get()
            try:
                if event is None:
                    break
                await self.router.handle(event)
            finally:
                self._queue.task_done()
