"""对外 API 服务模块。

提供简化的函数接口供上层应用调用。
"""

from typing import AsyncIterable, List, Optional, TypeVar

from dte_chat_adapter.adapter.chat_adapter_api import DirectToEngineChatAdapterAPI
from dte_chat_adapter.config.settings import Settings, settings
from dte_chat_adapter.domain.models import RetryConfig
from dte_chat_adapter.strategies.base import Strategy

T = TypeVar("T")


def retry_config_from_settings(cfg: Settings = settings) -> RetryConfig:
    """用配置文件 / 环境变量中的 retry_* 字段构造 RetryConfig。"""

    return RetryConfig(
        factor=cfg.retry_factor,
        min_timeout=cfg.retry_min_timeout,
        max_timeout=cfg.retry_max_timeout,
        retries=cfg.retry_retries,
    )


def create_chat_adapter(strategy: Strategy, cfg: Optional[Settings] = None) -> DirectToEngineChatAdapterAPI:
    """按配置创建适配器实例。

    配置在创建时读取一次并固化到实例中，之后修改 settings 不影响已创建的适配器。
    """

    cfg = cfg or settings
    return DirectToEngineChatAdapterAPI(
        strategy,
        retry_config_from_settings(cfg),
        timeout=cfg.http_timeout,
        max_continue_turns=cfg.max_continue_turns,
    )


async def collect_activities(iterable: AsyncIterable[T]) -> List[T]:
    """把异步序列完整拉取为列表。"""

    return [item async for item in iterable]
