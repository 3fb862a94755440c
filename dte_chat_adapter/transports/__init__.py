"""传输层。

该包下的模块负责：
- 单次 HTTP 尝试与状态码映射 (http)。
- 建立请求阶段的重试 (retry)。
- 两种传输格式的解码 (rest、server_sent_events)。
"""

from typing import Dict

from dte_chat_adapter.domain.exceptions import ValidationError
from dte_chat_adapter.transports.base import DecodedResponse, Decoder
from dte_chat_adapter.transports.rest import RestDecoder
from dte_chat_adapter.transports.server_sent_events import ServerSentEventsDecoder


DECODERS: Dict[str, Decoder] = {
    "rest": RestDecoder(),
    "server sent events": ServerSentEventsDecoder(),
}


def get_decoder(transport: str) -> Decoder:
    """根据传输方式选择解码器，未知传输方式抛出 ValidationError。"""

    try:
        return DECODERS[transport]
    except KeyError:
        raise ValidationError(code="UNKNOWN_TRANSPORT", message=f"Unknown transport: {transport!r}") from None


__all__ = ["DECODERS", "DecodedResponse", "Decoder", "get_decoder"]
