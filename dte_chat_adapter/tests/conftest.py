import json
from typing import Any, Callable, Dict, List, Union

import httpx
import pytest

from dte_chat_adapter.domain.models import RequestDescriptor

_RealAsyncClient = httpx.AsyncClient

Responder = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class MockBackend:
    """按路径排队的假后端，配合 httpx.MockTransport 使用。"""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self._queues: Dict[str, List[Responder]] = {}

    def on(self, path: str, *responders: Responder) -> None:
        self._queues.setdefault(path, []).extend(responders)

    def calls(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self._queues.get(request.url.path)
        if not queue:
            raise AssertionError(f"This function is not mocked: {request.url.path}")
        responder = queue.pop(0)
        if callable(responder):
            return responder(request)
        return responder


@pytest.fixture
def backend(monkeypatch):
    mock = MockBackend()

    def client_factory(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(mock.handle)
        return _RealAsyncClient(*args, **kwargs)

    monkeypatch.setattr("httpx.AsyncClient", client_factory)
    return mock


class StrategyStub:
    def __init__(self, transport: str, base_url: str = "http://test/") -> None:
        self.transport = transport
        self.base_url = base_url
        self.start_calls = 0
        self.turn_calls: List[Any] = []

    async def prepare_start_new_conversation(self) -> RequestDescriptor:
        self.start_calls += 1
        return RequestDescriptor(
            base_url=self.base_url + "?api=start#1",
            body={"dummy": "dummy"},
            headers={"x-dummy": "dummy"},
            transport=self.transport,
        )

    async def prepare_execute_turn(self, conversation_id) -> RequestDescriptor:
        self.turn_calls.append(conversation_id)
        return RequestDescriptor(
            base_url=self.base_url + "?api=execute#2",
            body={"dummy": "dummy"},
            headers={"x-dummy": "dummy"},
            transport=self.transport,
        )


def rest_response(activities: List[Dict[str, Any]], action: str = "waiting", conversation_id: str = "c-00001") -> httpx.Response:
    return httpx.Response(
        200,
        json={"action": action, "activities": activities, "conversationId": conversation_id},
    )


def sse_response(activities: List[Dict[str, Any]], conversation_id: str = "c-00001", end: bool = True) -> httpx.Response:
    frames = "".join(f"event: activity\ndata: {json.dumps(a)}\n\n" for a in activities)
    if end:
        frames += "event: end\ndata: end\n\n"
    return httpx.Response(
        200,
        content=frames.encode("utf-8"),
        headers={"content-type": "text/event-stream", "x-ms-conversationid": conversation_id},
    )


def bot_response(transport: str, activities: List[Dict[str, Any]], conversation_id: str = "c-00001") -> httpx.Response:
    if transport == "rest":
        return rest_response(activities, conversation_id=conversation_id)
    return sse_response(activities, conversation_id=conversation_id)
