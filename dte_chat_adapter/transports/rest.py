"""REST 传输解码器。

响应是一个完整的 JSON 文档：

    {"action": "waiting", "activities": [...], "conversationId": "..."}

收到即完整，本模块只负责校验结构并按数组顺序产出 activity。
"""

import json
from typing import Any, AsyncIterator, List

import httpx

from dte_chat_adapter.domain.conversation import parse_conversation_id
from dte_chat_adapter.domain.exceptions import DecodeError
from dte_chat_adapter.domain.models import Activity, BotResponse
from dte_chat_adapter.transports.base import DecodedResponse


def parse_bot_response(data: Any) -> BotResponse:
    """将后端 JSON 解析为 BotResponse。

    结构不符合时抛出 DecodeError；conversationId 非法时抛出 ValidationError。
    """

    if not isinstance(data, dict):
        raise DecodeError(code="DECODE_ERROR", message="Bot response must be a JSON object")
    action = data.get("action")
    if not isinstance(action, str) or not action:
        raise DecodeError(code="DECODE_ERROR", message="Bot response is missing 'action'")
    activities_raw = data.get("activities")
    if not isinstance(activities_raw, list):
        raise DecodeError(code="DECODE_ERROR", message="Bot response 'activities' must be an array")
    activities: List[Activity] = []
    for idx, activity in enumerate(activities_raw):
        if not isinstance(activity, dict):
            raise DecodeError(code="DECODE_ERROR", message=f"Activity #{idx} must be a JSON object")
        activities.append(activity)
    return BotResponse(
        action=action,
        activities=activities,
        conversation_id=parse_conversation_id(data.get("conversationId")),
    )


async def _iterate(activities: List[Activity]) -> AsyncIterator[Activity]:
    for activity in activities:
        yield activity


class RestDecoder:
    transport = "rest"
    accept = "application/json"
    read_body = True

    async def decode(self, response: httpx.Response) -> DecodedResponse:
        try:
            data = json.loads(response.content)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodeError(code="DECODE_ERROR", message=f"Invalid JSON body: {e}") from e
        bot_response = parse_bot_response(data)
        return DecodedResponse(
            conversation_id=bot_response.conversation_id,
            activities=_iterate(bot_response.activities),
            action=bot_response.action,
        )
