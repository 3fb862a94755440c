"""适配器编排层：组合 Strategy、重试、解码器与会话状态。"""

from dte_chat_adapter.adapter.chat_adapter_api import DirectToEngineChatAdapterAPI

__all__ = ["DirectToEngineChatAdapterAPI"]
