"""统一业务异常模型。

适配器对外抛出的所有错误都继承自 BusinessError，
调用方可以按类型区分：生命周期违规、可重试的传输错误、解码错误与校验错误。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "DECODE_ERROR"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 conversation_id、transport 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class LifecycleError(BusinessError):
    """会话生命周期违规，例如重复调用 start_new_conversation。"""


class TransientTransportError(BusinessError):
    """建立请求阶段的暂时性错误，由 RetryPolicy 负责重试/退避。"""


class NetworkError(TransientTransportError):
    """网络层错误，例如连接失败、超时等。"""


class RateLimitError(TransientTransportError):
    """后端返回 429。"""


class ServerError(TransientTransportError):
    """后端返回 5xx。"""


class ApiError(BusinessError):
    """后端返回不可重试的非 2xx 状态（通常是 4xx）。"""


class DecodeError(BusinessError):
    """响应体 JSON 或 SSE 帧格式错误。数据可能已部分交付，不重试。"""


class ValidationError(BusinessError):
    """会话 ID 或配置校验失败。"""
