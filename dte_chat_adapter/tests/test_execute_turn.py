import json

import httpx
import pytest

from conftest import StrategyStub, bot_response, rest_response
from dte_chat_adapter.adapter.chat_adapter_api import DirectToEngineChatAdapterAPI, conversation_url
from dte_chat_adapter.api.service import collect_activities
from dte_chat_adapter.domain.conversation import parse_conversation_id
from dte_chat_adapter.domain.exceptions import ApiError, LifecycleError

GREETING = {"from": {"id": "bot"}, "text": "Hello, World!", "type": "message"}
USER_MESSAGE = {"from": {"id": "user"}, "text": "Hi", "type": "message"}

TRANSPORTS = ["rest", "server sent events"]


async def _started_adapter(backend, transport: str, **kwargs) -> DirectToEngineChatAdapterAPI:
    backend.on("/conversations", bot_response(transport, [GREETING]))
    adapter = DirectToEngineChatAdapterAPI(StrategyStub(transport), {"factor": 1, "min_timeout": 0}, **kwargs)
    await collect_activities(adapter.start_new_conversation(emit_start_conversation_event=False))
    return adapter


def test_conversation_url_layout():
    cid = parse_conversation_id("c-00001")
    assert conversation_url("http://test/?api=start#1") == "http://test/conversations?api=start"
    assert conversation_url("http://test/bots/b1/", cid) == "http://test/bots/b1/conversations/c-00001"
    assert conversation_url("http://test/bots/b1", cid, "continue") == "http://test/bots/b1/conversations/c-00001/continue"


@pytest.mark.asyncio
@pytest.mark.parametrize("transport", TRANSPORTS)
async def test_execute_turn_multiple_times(backend, transport):
    adapter = await _started_adapter(backend, transport)
    backend.on(
        "/conversations/c-00001",
        bot_response(transport, [{"type": "message", "text": "one"}]),
        bot_response(transport, [{"type": "message", "text": "two"}]),
    )

    first = await collect_activities(adapter.execute_turn(USER_MESSAGE))
    second = await collect_activities(adapter.execute_turn(USER_MESSAGE))

    assert first == [{"type": "message", "text": "one"}]
    assert second == [{"type": "message", "text": "two"}]
    calls = backend.calls("/conversations/c-00001")
    assert len(calls) == 2
    assert json.loads(calls[0].content) == {"dummy": "dummy", "activity": USER_MESSAGE}
    assert calls[0].headers["x-ms-conversationid"] == "c-00001"
    assert calls[0].url.params["api"] == "execute"
    assert adapter.conversation_id == parse_conversation_id("c-00001")


@pytest.mark.asyncio
async def test_execute_turn_passes_conversation_id_to_strategy(backend):
    strategy = StrategyStub("rest")
    backend.on("/conversations", rest_response([GREETING]))
    backend.on("/conversations/c-00001", rest_response([]))
    adapter = DirectToEngineChatAdapterAPI(strategy, {"factor": 1, "min_timeout": 0})

    await collect_activities(adapter.start_new_conversation())
    await collect_activities(adapter.execute_turn(USER_MESSAGE))

    assert strategy.start_calls == 1
    assert strategy.turn_calls == [parse_conversation_id("c-00001")]


@pytest.mark.asyncio
async def test_execute_turn_before_start_rejects(backend):
    adapter = DirectToEngineChatAdapterAPI(StrategyStub("rest"))

    result = adapter.execute_turn(USER_MESSAGE)

    with pytest.raises(LifecycleError, match=r"must be called before executeTurn"):
        await result.__anext__()
    assert backend.requests == []


@pytest.mark.asyncio
@pytest.mark.parametrize("transport", TRANSPORTS)
async def test_turn_after_break_without_aclose(backend, transport):
    adapter = await _started_adapter(backend, transport)
    backend.on(
        "/conversations/c-00001",
        bot_response(transport, [{"text": "a"}, {"text": "b"}]),
        bot_response(transport, [{"text": "c"}]),
    )

    async for activity in adapter.execute_turn(USER_MESSAGE):
        assert activity == {"text": "a"}
        break

    assert await collect_activities(adapter.execute_turn(USER_MESSAGE)) == [{"text": "c"}]


@pytest.mark.asyncio
async def test_rest_continue_action_follows_up(backend):
    adapter = await _started_adapter(backend, "rest")
    backend.on("/conversations/c-00001", rest_response([{"text": "1"}], action="continue"))
    backend.on(
        "/conversations/c-00001/continue",
        rest_response([{"text": "2"}], action="continue"),
        rest_response([{"text": "3"}], action="waiting"),
    )

    activities = await collect_activities(adapter.execute_turn(USER_MESSAGE))

    assert activities == [{"text": "1"}, {"text": "2"}, {"text": "3"}]
    continue_calls = backend.calls("/conversations/c-00001/continue")
    assert len(continue_calls) == 2
    assert json.loads(continue_calls[0].content) == {"dummy": "dummy"}
    assert continue_calls[0].headers["x-ms-conversationid"] == "c-00001"


@pytest.mark.asyncio
async def test_rest_continue_is_bounded(backend):
    adapter = await _started_adapter(backend, "rest", max_continue_turns=2)
    backend.on("/conversations/c-00001", rest_response([{"text": "1"}], action="continue"))
    backend.on("/conversations/c-00001/continue", rest_response([{"text": "2"}], action="continue"))

    received = []
    with pytest.raises(ApiError) as excinfo:
        async for activity in adapter.execute_turn(USER_MESSAGE):
            received.append(activity)

    assert excinfo.value.code == "TOO_MANY_TURNS"
    assert received == [{"text": "1"}, {"text": "2"}]


@pytest.mark.asyncio
async def test_turn_response_with_other_conversation_id_keeps_captured_id(backend):
    adapter = await _started_adapter(backend, "rest")
    backend.on("/conversations/c-00001", rest_response([], conversation_id="c-99999"))

    await collect_activities(adapter.execute_turn(USER_MESSAGE))

    assert adapter.conversation_id == parse_conversation_id("c-00001")


@pytest.mark.asyncio
async def test_strategy_headers_cannot_override_accept(backend):
    class UpperCaseHeaderStrategy(StrategyStub):
        async def prepare_start_new_conversation(self):
            descriptor = await super().prepare_start_new_conversation()
            return type(descriptor)(
                base_url=descriptor.base_url,
                body=descriptor.body,
                headers={"Accept": "text/plain", "Authorization": "Bearer t"},
                transport=descriptor.transport,
            )

    backend.on("/conversations", rest_response([GREETING]))
    adapter = DirectToEngineChatAdapterAPI(UpperCaseHeaderStrategy("rest"))

    await collect_activities(adapter.start_new_conversation())

    request = backend.calls("/conversations")[0]
    assert request.headers["accept"] == "application/json"
    assert request.headers["authorization"] == "Bearer t"
    assert isinstance(request, httpx.Request)
