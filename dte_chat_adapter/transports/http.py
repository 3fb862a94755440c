"""单次 HTTP 尝试：发送请求并把失败映射为业务异常。

- httpx.RequestError -> NetworkError（可重试）
- 429 -> RateLimitError（可重试）
- 5xx -> ServerError（可重试）
- 其他 4xx -> ApiError（不重试）
"""

from typing import Any, Mapping

import httpx

from dte_chat_adapter.domain.exceptions import ApiError, NetworkError, RateLimitError, ServerError


async def send_request(
    client: httpx.AsyncClient,
    url: str,
    *,
    body: Mapping[str, Any],
    headers: Mapping[str, str],
    read_body: bool,
) -> httpx.Response:
    """POST 一次请求并返回已打开的响应。

    read_body 为 True 时在本次尝试内读完响应体（REST），读取失败同样计为可重试的网络错误；
    为 False 时只等待响应头（SSE），调用方负责 aclose()。
    """

    request = client.build_request("POST", url, json=dict(body), headers=headers)
    try:
        response = await client.send(request, stream=True)
    except httpx.RequestError as e:
        raise NetworkError(code="NETWORK_ERROR", message=str(e) or type(e).__name__, url=url) from e

    try:
        if response.status_code >= 400 or read_body:
            await response.aread()
    except httpx.RequestError as e:
        await response.aclose()
        raise NetworkError(code="NETWORK_ERROR", message=str(e) or type(e).__name__, url=url) from e

    if response.status_code == 429:
        await response.aclose()
        raise RateLimitError(code="RATE_LIMIT", message="Backend rate limit", http_status=429, url=url)
    if response.status_code >= 500:
        await response.aclose()
        raise ServerError(
            code="SERVER_ERROR",
            message=response.text or f"HTTP {response.status_code}",
            http_status=response.status_code,
            url=url,
        )
    if response.status_code >= 400:
        await response.aclose()
        raise ApiError(
            code="API_ERROR",
            message=response.text or f"HTTP {response.status_code}",
            http_status=response.status_code,
            url=url,
        )
    return response
