"""固定配置的 Strategy。

适合本地调试或后端地址/请求头在进程生命周期内不变的场景：
开始会话与执行回合使用同一个 base_url，可分别指定附加请求体。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from dte_chat_adapter.domain.conversation import ConversationId
from dte_chat_adapter.domain.exceptions import ValidationError
from dte_chat_adapter.domain.models import TRANSPORTS, RequestDescriptor, Transport


@dataclass
class StaticStrategy:
    base_url: str
    transport: Transport = "rest"
    headers: Mapping[str, str] = field(default_factory=dict)
    start_body: Mapping[str, Any] = field(default_factory=dict)
    turn_body: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ValidationError(code="MISSING_BASE_URL", message="base_url not set")
        if self.transport not in TRANSPORTS:
            raise ValidationError(code="UNKNOWN_TRANSPORT", message=f"Unknown transport: {self.transport!r}")

    async def prepare_start_new_conversation(self) -> RequestDescriptor:
        return self._descriptor(self.start_body)

    async def prepare_execute_turn(self, conversation_id: ConversationId) -> RequestDescriptor:
        body = self.turn_body if self.turn_body is not None else self.start_body
        return self._descriptor(body)

    def _descriptor(self, body: Mapping[str, Any]) -> RequestDescriptor:
        # 每次返回新的副本，RequestDescriptor 为一次性使用
        headers: Dict[str, str] = dict(self.headers)
        return RequestDescriptor(
            base_url=self.base_url,
            body=dict(body),
            headers=headers,
            transport=self.transport,
        )
