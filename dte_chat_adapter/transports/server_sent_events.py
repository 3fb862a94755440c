"""Server-Sent-Events 传输解码器。

响应体是以空行分隔的帧序列：

    event: activity
    data: {"from": {"id": "bot"}, "text": "Hello, World!", "type": "message"}

    event: end
    data: end

- activity 帧：JSON 解析后立即产出（边收边产，不缓冲）。
- end 帧：本次调用结束，不产出 activity。
- 其他事件名：忽略并记录 debug 日志。

会话 ID 来自响应头 x-ms-conversationid，在解析任何帧之前读取。
"""

import json
import logging
from contextlib import aclosing
from typing import AsyncIterator, List, Optional

import httpx

from dte_chat_adapter.domain.conversation import parse_conversation_id
from dte_chat_adapter.domain.exceptions import DecodeError, NetworkError
from dte_chat_adapter.domain.models import Activity, ServerEventFrame
from dte_chat_adapter.infrastructure.logging.logger import log_event
from dte_chat_adapter.transports.base import DecodedResponse

CONVERSATION_ID_HEADER = "x-ms-conversationid"


class ServerEventParser:
    """逐行解析 SSE 文本，遇到空行时产出一帧。"""

    def __init__(self) -> None:
        self._event: Optional[str] = None
        self._data: List[str] = []

    def feed(self, line: str) -> Optional[ServerEventFrame]:
        if not line:
            return self._dispatch()
        if line.startswith(":"):
            return None
        name, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]
        if name == "event":
            self._event = value
        elif name == "data":
            self._data.append(value)
        # id / retry 字段与未知字段按 SSE 规范忽略
        return None

    def flush(self) -> Optional[ServerEventFrame]:
        """连接关闭时处理最后一帧（末尾没有空行的情况）。"""

        return self._dispatch()

    def _dispatch(self) -> Optional[ServerEventFrame]:
        if self._event is None and not self._data:
            return None
        frame = ServerEventFrame(event=self._event or "message", data="\n".join(self._data))
        self._event = None
        self._data = []
        return frame


def parse_activity(data: str) -> Activity:
    try:
        activity = json.loads(data)
    except json.JSONDecodeError as e:
        raise DecodeError(code="DECODE_ERROR", message=f"Invalid activity frame: {e}") from e
    if not isinstance(activity, dict):
        raise DecodeError(code="DECODE_ERROR", message="Activity frame must be a JSON object")
    return activity


async def iter_frames(response: httpx.Response) -> AsyncIterator[ServerEventFrame]:
    parser = ServerEventParser()
    try:
        async with aclosing(response.aiter_lines()) as lines:
            async for line in lines:
                frame = parser.feed(line)
                if frame is not None:
                    yield frame
    except httpx.RequestError as e:
        # 流已开始，不再重试
        raise NetworkError(code="STREAM_INTERRUPTED", message=str(e) or type(e).__name__) from e
    frame = parser.flush()
    if frame is not None:
        yield frame


class ServerSentEventsDecoder:
    transport = "server sent events"
    accept = "text/event-stream"
    read_body = False

    async def decode(self, response: httpx.Response) -> DecodedResponse:
        raw_id = response.headers.get(CONVERSATION_ID_HEADER)
        return DecodedResponse(
            conversation_id=parse_conversation_id(raw_id) if raw_id is not None else None,
            activities=self._iter_activities(response),
        )

    async def _iter_activities(self, response: httpx.Response) -> AsyncIterator[Activity]:
        frames = iter_frames(response)
        try:
            async for frame in frames:
                if frame.event == "end":
                    return
                if frame.event == "activity":
                    yield parse_activity(frame.data)
                else:
                    log_event(logging.DEBUG, "Ignored server event", {}, event=frame.event)
        finally:
            await frames.aclose()
        log_event(logging.WARNING, "Event stream closed without end event", {})
