"""Strategy 抽象接口。

适配器本身不关心后端部署形态（URL 规则、鉴权头、选用哪种传输），
这些都由 Strategy 决定：

- 每种部署形态实现一个 Strategy。
- 负责：为 "开始会话" 与 "执行回合" 两种意图各产出一个 RequestDescriptor。

两个方法都是异步的（例如需要先异步获取 token），每次适配器调用最多调用一次。
"""

from typing import Protocol

from dte_chat_adapter.domain.conversation import ConversationId
from dte_chat_adapter.domain.models import RequestDescriptor


class Strategy(Protocol):
    """请求构造策略协议。"""

    async def prepare_start_new_conversation(self) -> RequestDescriptor:
        ...

    async def prepare_execute_turn(self, conversation_id: ConversationId) -> RequestDescriptor:
        """为已建立会话中的一个回合构造请求。"""

        ...
