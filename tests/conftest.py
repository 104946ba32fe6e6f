"""Pytest configuration and shared fixtures."""

from unittest.mock import AsyncMock

import pytest

from finbot.communication.lark import SendResult
from finbot.db.messages import MessageStore
from finbot.errors import DispatchError
from finbot.tracker import ConversationTracker


class FakeLark:
    """Stand-in for LarkService with scripted chat pages and send outcomes."""

    def __init__(self, pages=None, fail_on_page=None, failing_chats=()):
        self.pages = pages if pages is not None else [[]]
        self.fail_on_page = fail_on_page
        self.failing_chats = set(failing_chats)
        self.sent: list[tuple[str, str, str]] = []
        self.create_message = AsyncMock(return_value=SendResult(success=True, message_id="om_bot_create"))
        self.reply_message = AsyncMock(return_value=SendResult(success=True, message_id="om_bot_reply"))

    async def iter_chat_ids(self, page_size=50):
        for index, page in enumerate(self.pages):
            if index == self.fail_on_page:
                raise DispatchError("failed to list chats: code=99991663, msg=invalid token")
            for chat_id in page:
                yield chat_id

    async def send_text(self, receive_id, receive_id_type, text):
        self.sent.append((receive_id, receive_id_type, text))
        if receive_id in self.failing_chats:
            return SendResult(success=False, code=230002, msg="Bot/User can NOT be out of the chat.", log_id="log-1")
        return SendResult(success=True, message_id=f"om_sent_{receive_id}")


@pytest.fixture
def store(tmp_path):
    """Message store on a fresh SQLite file (parent dir created by the store)."""
    return MessageStore.open(str(tmp_path / "data" / "test.db"))


@pytest.fixture
def tracker():
    return ConversationTracker()


@pytest.fixture
def fake_lark():
    return FakeLark()
