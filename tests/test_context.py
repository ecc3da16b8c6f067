"""
Tests for HandlerContext.

Run with: pytest tests/test_context.py -v
"""

from types import SimpleNamespace

import httpx
import pytest

from botwire.context import HandlerContext
from botwire.errors import ApiError, NetworkError
from botwire.types import GetChatId, Update

from .fakes import FakeApi, failure, make_bot, make_update, ok, sent_message


def callback_update(update_id: int, chat_id=None) -> Update:
    query = {
        "id": "cb-1",
        "from": {"id": 5, "is_bot": False, "first_name": "Ann"},
        "chat_instance": "ci",
        "data": "yes",
    }
    if chat_id is not None:
        query["message"] = {
            "message_id": 3,
            "date": 1700000000,
            "chat": {"id": chat_id, "type": "group"},
        }
    return Update.model_validate({"update_id": update_id, "callback_query": query})


class TestChatId:

    def test_message_update(self):
        ctx = HandlerContext(make_bot(FakeApi()), Update.model_validate(make_update(1, chat_id=77)))
        assert ctx.chat_id == 77
        assert ctx.message.text == "hi"

    def test_callback_with_message(self):
        ctx = HandlerContext(make_bot(FakeApi()), callback_update(2, chat_id=-100123))
        assert ctx.chat_id == -100123

    def test_update_without_chat(self):
        update = Update.model_validate({"update_id": 3, "inline_query": {"id": "q", "query": "cats"}})
        ctx = HandlerContext(make_bot(FakeApi()), update)

        assert not hasattr(ctx, "chat_id")
        with pytest.raises(AttributeError):
            ctx.chat_id

    def test_get_chat_id_capability(self):
        update = Update.model_validate(make_update(1))
        assert isinstance(update, GetChatId)
        assert isinstance(update.message, GetChatId)

    def test_chat_id_comes_from_the_capability(self):
        ctx = HandlerContext(make_bot(FakeApi()), SimpleNamespace(id=8, chat_id=-5))
        assert ctx.chat_id == -5

    def test_update_without_capability(self):
        ctx = HandlerContext(make_bot(FakeApi()), SimpleNamespace(id=9))

        assert not isinstance(ctx.update, GetChatId)
        with pytest.raises(AttributeError):
            ctx.chat_id


class TestReply:

    @pytest.mark.anyio
    async def test_reply_sends_one_message_to_origin_chat(self):
        api = FakeApi(ok(sent_message(77, "pong")))
        ctx = HandlerContext(make_bot(api), Update.model_validate(make_update(1, chat_id=77)))

        result = await ctx.reply("pong")

        assert result is None
        assert api.methods == ["sendMessage"]
        assert api.json_body() == {"chat_id": 77, "text": "pong"}

    @pytest.mark.anyio
    async def test_reply_passes_options(self):
        api = FakeApi(ok(sent_message(77, "<b>x</b>")))
        ctx = HandlerContext(make_bot(api), Update.model_validate(make_update(1, chat_id=77)))

        await ctx.reply("<b>x</b>", parse_mode="HTML", reply_to_message_id=10)

        assert api.json_body()["parse_mode"] == "HTML"
        assert api.json_body()["reply_to_message_id"] == 10

    @pytest.mark.anyio
    async def test_reply_surfaces_api_error_without_retry(self):
        api = FakeApi(failure(403, "Forbidden: bot was blocked by the user"), ok(sent_message(77, "x")))
        ctx = HandlerContext(make_bot(api), Update.model_validate(make_update(1, chat_id=77)))

        with pytest.raises(ApiError) as exc_info:
            await ctx.reply("hello")

        assert exc_info.value.status_code == 403
        assert len(api.requests) == 1

    @pytest.mark.anyio
    async def test_reply_surfaces_network_error(self):
        api = FakeApi(httpx.ConnectError("down"))
        ctx = HandlerContext(make_bot(api), Update.model_validate(make_update(1)))

        with pytest.raises(NetworkError):
            await ctx.reply("hello")

    @pytest.mark.anyio
    async def test_reply_unavailable_without_chat(self):
        api = FakeApi()
        ctx = HandlerContext(make_bot(api), callback_update(4))

        with pytest.raises(AttributeError):
            await ctx.reply("hello")

        assert api.requests == []
