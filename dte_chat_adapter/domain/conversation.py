from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .exceptions import LifecycleError, ValidationError


START_TWICE_MESSAGE = "startNewConversation() cannot be called more than once."


@dataclass(frozen=True)
class ConversationId:
    """后端分配的会话 ID。构造时即校验，推荐通过 parse_conversation_id 获得。"""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value:
            raise ValidationError(code="INVALID_CONVERSATION_ID", message="Conversation ID must be a non-empty string")
        if any(ch.isspace() or not ch.isprintable() for ch in self.value):
            raise ValidationError(
                code="INVALID_CONVERSATION_ID",
                message=f"Conversation ID is malformed: {self.value!r}",
            )

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"ConversationId({self.value!r})"


def parse_conversation_id(value: Any) -> ConversationId:
    """校验并构造 ConversationId。

    空值、非字符串、或包含空白/控制字符的值都视为非法，抛出 ValidationError。
    """

    if isinstance(value, ConversationId):
        return value
    return ConversationId(value)


class ConversationPhase(str, Enum):
    NOT_STARTED = "not_started"
    STARTING = "starting"
    STARTED = "started"


class ConversationState:
    """单个适配器实例的会话状态机：NOT_STARTED -> STARTING -> STARTED。

    不会回到 NOT_STARTED；失败的 start 同样占用唯一一次机会。
    """

    def __init__(self) -> None:
        self._phase = ConversationPhase.NOT_STARTED
        self._conversation_id: Optional[ConversationId] = None

    @property
    def phase(self) -> ConversationPhase:
        return self._phase

    @property
    def conversation_id(self) -> Optional[ConversationId]:
        return self._conversation_id

    @property
    def started(self) -> bool:
        return self._phase is ConversationPhase.STARTED

    def begin_start(self) -> None:
        if self._phase is not ConversationPhase.NOT_STARTED:
            raise LifecycleError(code="START_TWICE", message=START_TWICE_MESSAGE)
        self._phase = ConversationPhase.STARTING

    def record_conversation_id(self, conversation_id: ConversationId) -> None:
        if self._conversation_id is not None:
            if self._conversation_id != conversation_id:
                raise LifecycleError(
                    code="CONVERSATION_ID_CHANGED",
                    message="Conversation ID cannot change once captured.",
                    conversation_id=str(self._conversation_id),
                )
            return
        self._conversation_id = conversation_id
        self._phase = ConversationPhase.STARTED
