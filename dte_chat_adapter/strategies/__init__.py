"""请求构造策略层。

该包下的模块负责：
- 定义 Strategy 抽象接口 (base)。
- 提供固定配置的实现 (static)。
"""

from dte_chat_adapter.strategies.base import Strategy
from dte_chat_adapter.strategies.static import StaticStrategy

__all__ = ["Strategy", "StaticStrategy"]
