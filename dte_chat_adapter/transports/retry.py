"""建立请求阶段的重试策略。

只包裹 "发出请求并拿到首个响应" 这一步；一旦开始向调用方产出 activity，
后续错误直接上抛，不再重试。
"""

import logging
from typing import Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from dte_chat_adapter.domain.exceptions import TransientTransportError
from dte_chat_adapter.domain.models import RetryConfig
from dte_chat_adapter.infrastructure.logging.logger import logger

T = TypeVar("T")


class RetryPolicy:
    """按 RetryConfig 对暂时性错误做指数退避重试。"""

    def __init__(self, config: RetryConfig) -> None:
        self._config = config

    @property
    def config(self) -> RetryConfig:
        return self._config

    def _wait(self) -> wait_exponential:
        # tenacity: multiplier * exp_base ** (attempt_number - 1)
        kwargs = {"multiplier": self._config.min_timeout, "exp_base": self._config.factor}
        if self._config.max_timeout is not None:
            kwargs["max"] = self._config.max_timeout
        return wait_exponential(**kwargs)

    async def call(self, operation: Callable[[], Awaitable[T]]) -> T:
        """执行 operation，耗尽重试次数后抛出最后一次的异常。"""

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._config.retries + 1),
            wait=self._wait(),
            retry=retry_if_exception_type(TransientTransportError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return await retrying(operation)
