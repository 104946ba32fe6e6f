"""Tests for the Lark adapter with a mocked SDK client."""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from finbot.communication.lark import LarkService, normalize_receive_id_type
from finbot.errors import DispatchError


def _resp(success=True, code=0, msg="success", data=None, log_id="log-1"):
    resp = MagicMock()
    resp.success.return_value = success
    resp.code = code
    resp.msg = msg
    resp.data = data
    resp.get_log_id.return_value = log_id
    return resp


def _chat_page(chat_ids, has_more=False, page_token=None):
    items = [SimpleNamespace(chat_id=c) for c in chat_ids]
    return _resp(data=SimpleNamespace(items=items, has_more=has_more, page_token=page_token))


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def service(client):
    return LarkService("cli_test", "secret", client=client)


class TestReceiveIdType:

    def test_known_types_pass_through(self):
        for t in ("open_id", "user_id", "union_id", "email", "chat_id"):
            assert normalize_receive_id_type(t) == t

    def test_unknown_falls_back_to_open_id(self):
        assert normalize_receive_id_type("phone") == "open_id"


class TestSend:

    @pytest.mark.asyncio
    async def test_create_success_returns_message_id(self, service, client):
        client.im.v1.message.create.return_value = _resp(data=SimpleNamespace(message_id="om_new"))

        result = await service.create_message("chat_id", "oc_1", "text", '{"text":"hi\\n"}')

        assert result.success
        assert result.message_id == "om_new"
        req = client.im.v1.message.create.call_args.args[0]
        assert req.receive_id_type == "chat_id"
        assert req.request_body.receive_id == "oc_1"
        assert req.request_body.msg_type == "text"

    @pytest.mark.asyncio
    async def test_create_failure_carries_code_msg_log_id(self, service, client):
        client.im.v1.message.create.return_value = _resp(
            success=False, code=230002, msg="bot not in chat", log_id="202601011200"
        )

        result = await service.create_message("chat_id", "oc_1", "text", "{}")

        assert not result.success
        assert (result.code, result.msg, result.log_id) == (230002, "bot not in chat", "202601011200")
        assert "230002" in result.describe()

    @pytest.mark.asyncio
    async def test_transport_error_becomes_failed_result(self, service, client):
        client.im.v1.message.reply.side_effect = ConnectionError("connection refused")

        result = await service.reply_message("om_1", "text", "{}")

        assert not result.success
        assert "connection refused" in result.describe()

    @pytest.mark.asyncio
    async def test_unreadable_response_becomes_failed_result(self, service, client):
        resp = MagicMock()
        resp.success.side_effect = AttributeError("'NoneType' object has no attribute 'code'")
        client.im.v1.message.create.return_value = resp

        result = await service.send_text("oc_1", "chat_id", "hi")

        assert not result.success
        assert "NoneType" in result.describe()

    @pytest.mark.asyncio
    async def test_reply_targets_message(self, service, client):
        client.im.v1.message.reply.return_value = _resp(data=SimpleNamespace(message_id="om_r"))

        result = await service.reply_message("om_1", "text", "{}")

        assert result.message_id == "om_r"
        req = client.im.v1.message.reply.call_args.args[0]
        assert req.message_id == "om_1"

    @pytest.mark.asyncio
    async def test_send_text_wraps_content(self, service, client):
        client.im.v1.message.create.return_value = _resp(data=SimpleNamespace(message_id="om_t"))

        await service.send_text("ou_1", "bogus", "helloworld")

        req = client.im.v1.message.create.call_args.args[0]
        assert req.receive_id_type == "open_id"
        assert json.loads(req.request_body.content) == {"text": "helloworld\n"}


class TestListChats:

    @pytest.mark.asyncio
    async def test_iterates_pages(self, service, client):
        client.im.v1.chat.list.side_effect = [
            _chat_page(["oc_1", "oc_2"], has_more=True, page_token="tok2"),
            _chat_page(["oc_3"], has_more=False),
        ]

        chat_ids = [c async for c in service.iter_chat_ids(page_size=2)]

        assert chat_ids == ["oc_1", "oc_2", "oc_3"]
        second_req = client.im.v1.chat.list.call_args_list[1].args[0]
        assert second_req.page_token == "tok2"

    @pytest.mark.asyncio
    async def test_unsuccessful_page_raises(self, service, client):
        client.im.v1.chat.list.return_value = _resp(success=False, code=99991663, msg="invalid token")
        with pytest.raises(DispatchError, match="99991663"):
            await service.list_chats()

    @pytest.mark.asyncio
    async def test_transport_error_raises(self, service, client):
        client.im.v1.chat.list.side_effect = TimeoutError("timed out")
        with pytest.raises(DispatchError):
            await service.list_chats()

    @pytest.mark.asyncio
    async def test_empty_data(self, service, client):
        client.im.v1.chat.list.return_value = _resp(data=None)
        page = await service.list_chats()
        assert page.chat_ids == [] and not page.has_more
