"""Broadcast dispatcher — fan out one message to every joined chat.

The chat list is gathered completely before any send: if a page fetch
fails, the broadcast is aborted rather than sent to a partial list.
Individual send failures are recorded in the report and never stop
the batch.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from .communication.lark import DEFAULT_PAGE_SIZE, LarkService, SendResult
from .communication.formatting import text_content
from .db.messages import MessageStore
from .errors import StorageError
from .tracker import ConversationTracker

logger = logging.getLogger("finbot.broadcast")

STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"


@dataclass
class BroadcastReport:
    total: int = 0
    success: int = 0
    failed: int = 0
    results: list[dict] = field(default_factory=list)

    def record(self, chat_id: str, result: SendResult) -> None:
        if result.success:
            self.success += 1
            self.results.append({"chat_id": chat_id, "status": STATUS_SUCCESS})
        else:
            self.failed += 1
            self.results.append({"chat_id": chat_id, "status": STATUS_FAILED, "error": result.describe()})

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "success": self.success,
            "failed": self.failed,
            "results": list(self.results),
        }


class BroadcastDispatcher:
    """Sends outbound messages to all joined chats, or to the most recent one."""

    def __init__(
        self,
        lark_service: LarkService,
        store: MessageStore,
        tracker: ConversationTracker,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        self.lark = lark_service
        self.store = store
        self.tracker = tracker
        self.page_size = page_size

    async def list_joined_conversations(self) -> list[str]:
        """Collect every chat ID the bot belongs to.

        Raises:
            DispatchError: any page fetch failed; nothing gathered so far is returned.
        """
        chat_ids = [chat_id async for chat_id in self.lark.iter_chat_ids(self.page_size)]
        logger.info(f"Found {len(chat_ids)} joined chats")
        return chat_ids

    async def broadcast(self, body: str) -> BroadcastReport:
        """Send ``body`` to every joined chat, in listing order.

        Raises:
            DispatchError: only when the chat listing fails.
        """
        chat_ids = await self.list_joined_conversations()
        report = BroadcastReport(total=len(chat_ids))

        for chat_id in chat_ids:
            result = await self.lark.send_text(chat_id, "chat_id", body)
            report.record(chat_id, result)
            if result.success:
                logger.info(f"Broadcast to chat {chat_id} succeeded")
                await self._save_sent(chat_id, result, body)
            else:
                logger.warning(f"Broadcast to chat {chat_id} failed: {result.describe()}")

        logger.info(f"Broadcast finished: total={report.total}, success={report.success}, failed={report.failed}")
        return report

    async def send_to_recent(self, body: str) -> Optional[SendResult]:
        """Send ``body`` to the most recently active chat.

        Returns:
            The send result, or None when no chat has been observed yet.
        """
        snapshot = self.tracker.current()
        if snapshot is None:
            logger.info("No recent conversation, nothing to send to")
            return None

        result = await self.lark.send_text(snapshot.conversation_id, "chat_id", body)
        if result.success:
            await self._save_sent(snapshot.conversation_id, result, body)
        else:
            logger.warning(f"Send to recent chat {snapshot.conversation_id} failed: {result.describe()}")
        return result

    async def _save_sent(self, chat_id: str, result: SendResult, body: str) -> None:
        if not result.message_id:
            return
        try:
            await self.store.record_sent(chat_id, result.message_id, text_content(body))
        except StorageError as e:
            logger.warning(f"Failed to save sent message {e.key}: {e}")
