"""领域层模型与协议。

包含：
- models: RequestDescriptor / BotResponse / ServerEventFrame / RetryConfig。
- conversation: ConversationId 与会话状态机。
- exceptions: 业务异常类型定义。
"""
