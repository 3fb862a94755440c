"""Direct-to-Engine 聊天适配器。

把 Strategy、RetryPolicy、传输解码器与会话状态机组合成两个入口：

- start_new_conversation: 开始会话（每个实例只能成功调用一次）。
- execute_turn: 在已建立的会话中执行一个回合。

两个入口都同步返回一个惰性的异步迭代器；所有错误（包括生命周期违规）
都在调用方第一次 / 后续拉取时抛出，调用本身从不抛异常。
调用方停止拉取时应 aclose() 该迭代器（或使用 contextlib.aclosing），
底层响应与 httpx 客户端随之释放。
"""

import logging
from contextlib import aclosing
from typing import Any, AsyncGenerator, Dict, Mapping, Optional
from urllib.parse import quote

import httpx

from dte_chat_adapter.config.settings import settings
from dte_chat_adapter.domain.conversation import ConversationId, ConversationState
from dte_chat_adapter.domain.exceptions import ApiError, BusinessError, LifecycleError, ValidationError
from dte_chat_adapter.domain.models import Activity, RequestDescriptor, RetryConfig
from dte_chat_adapter.infrastructure.logging.logger import log_event
from dte_chat_adapter.strategies.base import Strategy
from dte_chat_adapter.transports import Decoder, get_decoder
from dte_chat_adapter.transports.http import send_request
from dte_chat_adapter.transports.retry import RetryPolicy
from dte_chat_adapter.transports.server_sent_events import CONVERSATION_ID_HEADER


def conversation_url(base_url: str, conversation_id: Optional[ConversationId] = None, suffix: Optional[str] = None) -> str:
    """在 base_url 的路径后拼接 conversations[/<id>[/<suffix>]]，保留查询串，去掉片段。"""

    url = httpx.URL(base_url)
    segments = ["conversations"]
    if conversation_id is not None:
        segments.append(quote(str(conversation_id), safe=""))
        if suffix:
            segments.append(suffix)
    path = url.path.rstrip("/") + "/" + "/".join(segments)
    return str(url.copy_with(path=path)).partition("#")[0]


async def _rejected(error: BusinessError) -> AsyncGenerator[Activity, None]:
    raise error
    yield  # pragma: no cover


class DirectToEngineChatAdapterAPI:
    """对外的聊天适配器。

    实例不为并发调用加锁；只有重复的 start_new_conversation 会被确定性地拒绝。

    Args:
        strategy: 负责构造每次请求的 Strategy。
        retry: RetryConfig 或其字段映射（如 {"factor": 1, "min_timeout": 0}），缺省字段取默认值。
        timeout: HTTP 超时（秒），缺省取 settings.http_timeout。
        max_continue_turns: REST 下 action=continue 的最大连续拉取次数。
    """

    def __init__(
        self,
        strategy: Strategy,
        retry: "RetryConfig | Mapping[str, Any] | None" = None,
        *,
        timeout: Optional[float] = None,
        max_continue_turns: Optional[int] = None,
    ):
        self._strategy = strategy
        self._retry_policy = RetryPolicy(RetryConfig.from_value(retry))
        self._timeout = timeout if timeout is not None else settings.http_timeout
        self._max_continue_turns = max_continue_turns or settings.max_continue_turns
        self._state = ConversationState()

    @property
    def conversation_id(self) -> Optional[ConversationId]:
        return self._state.conversation_id

    @property
    def retry_config(self) -> RetryConfig:
        return self._retry_policy.config

    # ---- 对外入口 ----

    def start_new_conversation(self, *, emit_start_conversation_event: bool = True) -> AsyncGenerator[Activity, None]:
        """开始新会话，返回后端产出的 activity 序列。

        重复调用不会发起任何请求，返回的序列在第一次拉取时抛出 LifecycleError。
        """

        try:
            self._state.begin_start()
        except LifecycleError as e:
            log_event(logging.WARNING, "Rejected repeated start", {}, code=e.code)
            return _rejected(e)
        return self._start_new_conversation(emit_start_conversation_event)

    def execute_turn(self, activity: Activity) -> AsyncGenerator[Activity, None]:
        """在已建立的会话中发送一个 activity，返回本回合后端产出的 activity 序列。"""

        conversation_id = self._state.conversation_id
        if not self._state.started or conversation_id is None:
            return _rejected(
                LifecycleError(
                    code="NOT_STARTED",
                    message="startNewConversation() must be called before executeTurn().",
                )
            )
        return self._execute_turn(conversation_id, activity)

    # ---- 内部流程 ----

    async def _start_new_conversation(self, emit_start_conversation_event: bool) -> AsyncGenerator[Activity, None]:
        descriptor = await self._strategy.prepare_start_new_conversation()
        body = {**descriptor.body, "emitStartConversationEvent": emit_start_conversation_event}
        async with aclosing(self._post(descriptor, body=body, conversation_id=None)) as activities:
            async for activity in activities:
                yield activity

    async def _execute_turn(self, conversation_id: ConversationId, activity: Activity) -> AsyncGenerator[Activity, None]:
        descriptor = await self._strategy.prepare_execute_turn(conversation_id)
        body = {**descriptor.body, "activity": activity}
        async with aclosing(self._post(descriptor, body=body, conversation_id=conversation_id)) as activities:
            async for bot_activity in activities:
                yield bot_activity

    async def _post(
        self,
        descriptor: RequestDescriptor,
        *,
        body: Dict[str, Any],
        conversation_id: Optional[ConversationId],
    ) -> AsyncGenerator[Activity, None]:
        """发送请求并按后端顺序转发 activity；REST 下处理 action=continue 的后续拉取。

        conversation_id 为 None 表示这是开始会话的请求，会话 ID 从响应中捕获。
        """

        decoder = get_decoder(descriptor.transport)
        log_ctx: Dict[str, Any] = {"transport": descriptor.transport}
        url = conversation_url(descriptor.base_url, conversation_id)

        async with httpx.AsyncClient(timeout=self._timeout, trust_env=False) as client:
            for turn in range(self._max_continue_turns):
                headers = self._build_headers(descriptor, decoder, conversation_id)
                log_event(logging.INFO, "Sending request", log_ctx, url=url, turn=turn)
                response = await self._retry_policy.call(
                    lambda: send_request(client, url, body=body, headers=headers, read_body=decoder.read_body)
                )
                try:
                    decoded = await decoder.decode(response)
                    if conversation_id is None:
                        conversation_id = self._capture_conversation_id(decoded.conversation_id, log_ctx)
                    elif decoded.conversation_id is not None and decoded.conversation_id != conversation_id:
                        log_event(
                            logging.WARNING,
                            "Ignored mismatched conversation ID",
                            log_ctx,
                            received=str(decoded.conversation_id),
                        )
                    count = 0
                    async with aclosing(decoded.activities) as activities:
                        async for activity in activities:
                            count += 1
                            yield activity
                finally:
                    await response.aclose()

                log_event(logging.INFO, "Response completed", log_ctx, activities=count, action=decoded.action)
                if decoded.action != "continue":
                    return
                url = conversation_url(descriptor.base_url, conversation_id, "continue")
                body = dict(descriptor.body)

        raise ApiError(
            code="TOO_MANY_TURNS",
            message=f"Exceeded {self._max_continue_turns} continue turns",
            **log_ctx,
        )

    def _capture_conversation_id(self, conversation_id: Optional[ConversationId], log_ctx: Dict[str, Any]) -> ConversationId:
        if conversation_id is None:
            raise ValidationError(code="MISSING_CONVERSATION_ID", message="Start response did not carry a conversation ID")
        self._state.record_conversation_id(conversation_id)
        log_ctx["conversation_id"] = str(conversation_id)
        log_event(logging.INFO, "Conversation started", log_ctx)
        return conversation_id

    @staticmethod
    def _build_headers(
        descriptor: RequestDescriptor,
        decoder: Decoder,
        conversation_id: Optional[ConversationId],
    ) -> httpx.Headers:
        headers = httpx.Headers(dict(descriptor.headers))
        headers["content-type"] = "application/json"
        headers["accept"] = decoder.accept
        if conversation_id is not None:
            headers[CONVERSATION_ID_HEADER] = str(conversation_id)
        return headers
