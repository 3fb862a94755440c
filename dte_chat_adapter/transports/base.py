"""传输解码器抽象接口。

每种传输方式实现一个 Decoder，把一次 HTTP 响应转换成 DecodedResponse：
会话 ID（若响应携带）、回合结束动作（若有）以及按后端顺序产出的 activity 异步序列。
"""

from dataclasses import dataclass
from typing import AsyncIterator, Optional, Protocol

import httpx

from dte_chat_adapter.domain.conversation import ConversationId
from dte_chat_adapter.domain.models import Activity, Transport


@dataclass
class DecodedResponse:
    conversation_id: Optional[ConversationId]
    activities: AsyncIterator[Activity]
    action: Optional[str] = None


class Decoder(Protocol):
    transport: Transport
    # 请求头 accept 的取值
    accept: str
    # 是否需要在重试范围内读完整个响应体
    read_body: bool

    async def decode(self, response: httpx.Response) -> DecodedResponse:
        ...
