"""统一的请求与响应数据模型。

本模块定义了适配器在 Strategy、传输层与调用方之间共享的标准数据结构：

- RequestDescriptor: Strategy 为一次调用准备的请求描述（地址、请求体、头、传输方式）。
- BotResponse: REST 传输下后端一次完整回合的结果。
- ServerEventFrame: SSE 传输下的一帧命名事件。
- RetryConfig: 建立请求阶段的退避参数。

Activity 对适配器来说是不透明的 JSON 对象，只做透传、不做解释。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Mapping, Optional, TYPE_CHECKING

from .exceptions import ValidationError

if TYPE_CHECKING:
    from dte_chat_adapter.domain.conversation import ConversationId


# 传输方式（与后端约定的字符串保持一致）
Transport = Literal["rest", "server sent events"]

TRANSPORTS: tuple = ("rest", "server sent events")

Activity = Dict[str, Any]

# 字段映射中也接受驼峰键名
_RETRY_KEY_ALIASES = {"minTimeout": "min_timeout", "maxTimeout": "max_timeout"}


@dataclass(frozen=True)
class RequestDescriptor:
    """Strategy 产出的一次性请求描述。

    - base_url: 后端根地址，适配器在其后拼接 conversations/... 路径。
    - body: 合并进请求 JSON 的字段。
    - headers: 额外请求头（例如鉴权头，由 Strategy 负责）。
    - transport: 本次调用使用的传输方式。
    """

    base_url: str
    body: Mapping[str, Any] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    transport: Transport = "rest"


@dataclass
class BotResponse:
    """REST 传输下的一次完整回合结果。

    action 为 "waiting" 表示本回合结束、等待用户输入；
    为 "continue" 表示后端还有后续内容，需要调用 continue 端点继续拉取。
    """

    action: str
    activities: List[Activity]
    conversation_id: "ConversationId"


@dataclass
class ServerEventFrame:
    """SSE 流中的一帧：event 名称 + data 文本（多行 data 以换行拼接）。"""

    event: str
    data: str


@dataclass(frozen=True)
class RetryConfig:
    """重试退避参数（单位：秒）。

    第 n 次重试前等待 min_timeout * factor ** (n - 1)，不超过 max_timeout。
    factor=1 为固定间隔；min_timeout=0 立即重试（测试中常用）。
    retries 为首次尝试之外的最多重试次数。
    """

    factor: float = 2.0
    min_timeout: float = 1.0
    max_timeout: Optional[float] = 30.0
    retries: int = 10

    def __post_init__(self) -> None:
        if self.factor < 1:
            self._invalid(f"factor must be >= 1, got {self.factor}")
        if self.min_timeout < 0:
            self._invalid(f"min_timeout must be >= 0, got {self.min_timeout}")
        if self.max_timeout is not None and self.max_timeout < 0:
            self._invalid(f"max_timeout must be >= 0, got {self.max_timeout}")
        if self.retries < 0:
            self._invalid(f"retries must be >= 0, got {self.retries}")

    @staticmethod
    def _invalid(message: str) -> None:
        raise ValidationError(code="INVALID_RETRY_CONFIG", message=message)

    @classmethod
    def from_value(cls, value: "RetryConfig | Mapping[str, Any] | None") -> "RetryConfig":
        """接受 RetryConfig 或字段映射（如 {"factor": 1, "min_timeout": 0} 或 {"minTimeout": 0}）。"""

        if value is None:
            return cls()
        if isinstance(value, RetryConfig):
            return value
        kwargs = {_RETRY_KEY_ALIASES.get(key, key): v for key, v in dict(value).items()}
        unknown = sorted(set(kwargs) - {"factor", "min_timeout", "max_timeout", "retries"})
        if unknown:
            cls._invalid(f"Unknown retry option(s): {', '.join(unknown)}")
        return cls(**kwargs)
