"""Lark/Feishu open-platform adapter.

The only module that talks to ``lark-oapi``. SDK calls are blocking, so
each public coroutine runs its call in the default executor. Send calls
never raise: transport errors and unsuccessful responses both come back
as a failed ``SendResult``. Listing raises ``DispatchError``, since a
partial chat list cannot be trusted.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, AsyncIterator, Callable, Optional, TypeVar

import lark_oapi as lark
from lark_oapi.api.im.v1 import (
    CreateMessageRequest,
    CreateMessageRequestBody,
    ListChatRequest,
    ReplyMessageRequest,
    ReplyMessageRequestBody,
)

from ..errors import DispatchError
from .formatting import MSG_TYPE_TEXT, text_content

logger = logging.getLogger("finbot.lark")

T = TypeVar("T")

RECEIVE_ID_TYPES = ("open_id", "user_id", "union_id", "email", "chat_id")
DEFAULT_RECEIVE_ID_TYPE = "open_id"
DEFAULT_PAGE_SIZE = 50


@dataclass
class SendResult:
    """Outcome of one create/reply call."""

    success: bool
    code: int = 0
    msg: str = ""
    log_id: str = ""
    message_id: Optional[str] = None
    error: Optional[str] = None

    def describe(self) -> str:
        if self.error:
            return f"send failed: {self.error}"
        return f"send failed: code={self.code}, msg={self.msg}, log_id={self.log_id}"

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ChatPage:
    chat_ids: list[str] = field(default_factory=list)
    page_token: Optional[str] = None
    has_more: bool = False


def resolve_domain(name: str) -> str:
    """Map a configured platform name to the SDK base URL."""
    if name.lower() == "lark":
        return lark.LARK_DOMAIN  # https://open.larksuite.com
    return lark.FEISHU_DOMAIN  # https://open.feishu.cn


def normalize_receive_id_type(receive_id_type: str) -> str:
    if receive_id_type in RECEIVE_ID_TYPES:
        return receive_id_type
    logger.warning(f"Unknown receive_id_type '{receive_id_type}', using {DEFAULT_RECEIVE_ID_TYPE}")
    return DEFAULT_RECEIVE_ID_TYPE


def _to_send_result(resp: Any) -> SendResult:
    if not resp.success():
        return SendResult(
            success=False,
            code=resp.code,
            msg=resp.msg or "",
            log_id=resp.get_log_id() or "",
        )
    data = getattr(resp, "data", None)
    return SendResult(success=True, message_id=getattr(data, "message_id", None))


class LarkService:
    """Outbound side of the bot: create, reply and list chats."""

    def __init__(
        self,
        app_id: str,
        app_secret: str,
        domain: str = "feishu",
        client: Optional[Any] = None,
    ):
        self.app_id = app_id
        self.domain = resolve_domain(domain)
        self._client = client or (
            lark.Client.builder()
            .app_id(app_id)
            .app_secret(app_secret)
            .domain(self.domain)
            .log_level(lark.LogLevel.INFO)
            .build()
        )

    async def _call(self, fn: Callable[..., T], *args) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn, *args)

    # ============================================================
    # SEND
    # ============================================================

    async def create_message(
        self, receive_id_type: str, receive_id: str, msg_type: str, content: str
    ) -> SendResult:
        """Send a new message addressed to ``receive_id``."""
        req = (
            CreateMessageRequest.builder()
            .receive_id_type(receive_id_type)
            .request_body(
                CreateMessageRequestBody.builder()
                .receive_id(receive_id)
                .msg_type(msg_type)
                .content(content)
                .build()
            )
            .build()
        )
        try:
            resp = await self._call(self._client.im.v1.message.create, req)
            return _to_send_result(resp)
        except Exception as e:
            logger.error(f"Create message to {receive_id} raised: {e}")
            return SendResult(success=False, error=str(e))

    async def reply_message(self, message_id: str, msg_type: str, content: str) -> SendResult:
        """Reply in-thread to the message ``message_id``."""
        req = (
            ReplyMessageRequest.builder()
            .message_id(message_id)
            .request_body(
                ReplyMessageRequestBody.builder()
                .msg_type(msg_type)
                .content(content)
                .build()
            )
            .build()
        )
        try:
            resp = await self._call(self._client.im.v1.message.reply, req)
            return _to_send_result(resp)
        except Exception as e:
            logger.error(f"Reply to message {message_id} raised: {e}")
            return SendResult(success=False, error=str(e))

    async def send_text(self, receive_id: str, receive_id_type: str, text: str) -> SendResult:
        """Send ``text`` as a one-line text message.

        Args:
            receive_id: Recipient (open_id, user_id, chat_id, ...).
            receive_id_type: One of RECEIVE_ID_TYPES; anything else becomes open_id.
            text: Plain message text.
        """
        id_type = normalize_receive_id_type(receive_id_type)
        result = await self.create_message(id_type, receive_id, MSG_TYPE_TEXT, text_content(text))
        if result.success:
            logger.info(f"Message sent: receive_id={receive_id}, message_id={result.message_id}")
        return result

    # ============================================================
    # LIST
    # ============================================================

    async def list_chats(self, page_size: int = DEFAULT_PAGE_SIZE, page_token: Optional[str] = None) -> ChatPage:
        """Fetch one page of chats the bot has joined.

        Raises:
            DispatchError: transport failure or unsuccessful response.
        """
        builder = ListChatRequest.builder().user_id_type("user_id").page_size(page_size)
        if page_token:
            builder = builder.page_token(page_token)
        try:
            resp = await self._call(self._client.im.v1.chat.list, builder.build())
        except Exception as e:
            raise DispatchError(f"failed to list chats: {e}") from e
        if not resp.success():
            raise DispatchError(f"failed to list chats: code={resp.code}, msg={resp.msg}")

        data = resp.data
        if data is None:
            return ChatPage()
        return ChatPage(
            chat_ids=[chat.chat_id for chat in (data.items or []) if chat.chat_id],
            page_token=data.page_token,
            has_more=bool(data.has_more),
        )

    async def iter_chat_ids(self, page_size: int = DEFAULT_PAGE_SIZE) -> AsyncIterator[str]:
        """Yield chat IDs page by page until the platform reports no more pages."""
        page_token: Optional[str] = None
        while True:
            page = await self.list_chats(page_size, page_token)
            for chat_id in page.chat_ids:
                yield chat_id
            if not page.has_more or not page.page_token:
                break
            page_token = page.page_token
