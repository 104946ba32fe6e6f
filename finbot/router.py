"""Event router — turns one inbound Lark message event into a reply.

Per event: track the conversation, persist the message, echo the text
back in both languages. Every step fails independently, and ``handle``
never raises, because the event channel has no retry contract worth
triggering.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from .communication.formatting import (
    MSG_TYPE_TEXT,
    build_reply_content,
    display_text,
    parse_text_content,
)
from .communication.lark import LarkService, SendResult
from .db.messages import SENDER_USER, Message, MessageStore
from .errors import MalformedEvent, StorageError
from .tracker import KIND_GROUP, KIND_P2P, ConversationTracker

logger = logging.getLogger("finbot.router")


def _preview(text: Optional[str], max_len: int = 100) -> str:
    if text is None:
        return ""
    return text if len(text) <= max_len else text[:max_len] + "..."


@dataclass
class InboundEvent:
    """Normalized fields of one inbound message event. Any field may be missing."""

    conversation_id: Optional[str] = None
    platform_message_id: Optional[str] = None
    message_kind: Optional[str] = None
    conversation_kind: Optional[str] = None
    body: Optional[str] = None

    @classmethod
    def from_lark(cls, data: Any) -> "InboundEvent":
        """Build from an SDK ``P2ImMessageReceiveV1`` payload."""
        event = getattr(data, "event", None)
        message = getattr(event, "message", None)
        if message is None:
            return cls()
        return cls(
            conversation_id=message.chat_id,
            platform_message_id=message.message_id,
            message_kind=message.message_type,
            conversation_kind=message.chat_type,
            body=message.content,
        )

    def require(self, name: str) -> str:
        value = getattr(self, name)
        if not value:
            raise MalformedEvent(f"{name} is missing")
        return value

    @property
    def is_p2p(self) -> bool:
        return self.conversation_kind == KIND_P2P


class EventRouter:
    """Handles inbound message events for one bot instance."""

    def __init__(self, lark_service: LarkService, store: MessageStore, tracker: ConversationTracker):
        self.lark = lark_service
        self.store = store
        self.tracker = tracker

    async def handle(self, event: InboundEvent) -> None:
        """Process one event to completion. Never raises."""
        try:
            await self._handle(event)
        except Exception as e:
            logger.error(f"Unexpected error handling message {event.platform_message_id}: {e}", exc_info=True)

    async def _handle(self, event: InboundEvent) -> None:
        logger.info(
            f"Message received: message_id={event.platform_message_id}, chat_id={event.conversation_id}, "
            f"message_type={event.message_kind}, chat_type={event.conversation_kind}, "
            f"content_length={len(event.body or '')}"
        )

        if event.conversation_id:
            kind = KIND_P2P if event.is_p2p else KIND_GROUP
            self.tracker.update(event.conversation_id, kind)
        else:
            logger.warning("chat_id is missing, recent conversation not updated")

        await self._persist_inbound(event)

        text = display_text(parse_text_content(event.body), event.message_kind)
        content = build_reply_content(text)
        result = await self._dispatch_reply(event, content)
        if result is None:
            return

        if not result.success:
            logger.error(f"Reply to {event.platform_message_id} failed: {result.describe()}")
            return

        if event.conversation_id and result.message_id:
            try:
                await self.store.record_sent(event.conversation_id, result.message_id, content)
            except StorageError as e:
                logger.warning(f"Failed to save sent message {e.key}: {e}")

    async def _persist_inbound(self, event: InboundEvent) -> None:
        try:
            message = Message(
                conversation_id=event.require("conversation_id"),
                platform_message_id=event.require("platform_message_id"),
                body=event.body or "",
                kind=event.message_kind or "",
                sender_id="",
                sender_kind=SENDER_USER,
                created_at=datetime.now(timezone.utc),
            )
        except MalformedEvent as e:
            logger.warning(f"Message not saved: {e}")
            return

        logger.debug(f"Message content preview: {_preview(event.body)}")
        try:
            await self.store.put(message)
        except StorageError as e:
            logger.error(f"Failed to save message {e.key}: {e}")
            return
        logger.info(f"Message saved: chat_id={message.conversation_id}, message_id={message.platform_message_id}")

    async def _dispatch_reply(self, event: InboundEvent, content: str) -> Optional[SendResult]:
        """p2p chats get a new message in the chat; groups get a threaded reply."""
        try:
            if event.is_p2p:
                chat_id = event.require("conversation_id")
                return await self.lark.create_message("chat_id", chat_id, MSG_TYPE_TEXT, content)
            message_id = event.require("platform_message_id")
            return await self.lark.reply_message(message_id, MSG_TYPE_TEXT, content)
        except MalformedEvent as e:
            logger.warning(f"Reply skipped: {e}")
            return None

