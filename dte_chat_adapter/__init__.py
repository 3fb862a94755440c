"""Direct-to-Engine 聊天适配器顶层包。

该包把对话后端的 HTTP 响应（单个 JSON 或 Server-Sent-Events 流）
统一转换为惰性产出的 activity 异步序列，
并负责会话生命周期（只开始一次、逐回合执行）与暂时性错误的重试退避。
"""

from dte_chat_adapter.adapter.chat_adapter_api import DirectToEngineChatAdapterAPI
from dte_chat_adapter.api.service import collect_activities, create_chat_adapter
from dte_chat_adapter.domain.conversation import ConversationId, parse_conversation_id
from dte_chat_adapter.domain.exceptions import (
    ApiError,
    BusinessError,
    DecodeError,
    LifecycleError,
    NetworkError,
    RateLimitError,
    ServerError,
    TransientTransportError,
    ValidationError,
)
from dte_chat_adapter.domain.models import Activity, BotResponse, RequestDescriptor, RetryConfig, Transport
from dte_chat_adapter.strategies import StaticStrategy, Strategy

__all__ = [
    "Activity",
    "ApiError",
    "BotResponse",
    "BusinessError",
    "ConversationId",
    "DecodeError",
    "DirectToEngineChatAdapterAPI",
    "LifecycleError",
    "NetworkError",
    "RateLimitError",
    "RequestDescriptor",
    "RetryConfig",
    "ServerError",
    "StaticStrategy",
    "Strategy",
    "TransientTransportError",
    "Transport",
    "ValidationError",
    "collect_activities",
    "create_chat_adapter",
    "parse_conversation_id",
]
