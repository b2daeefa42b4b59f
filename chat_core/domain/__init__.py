"""领域层模型与状态容器。

包含：
- models: Message / Exchange / Conversation / Dialog / ResponseEnvelope。
- store: 当前会话的状态容器及其命令。
- exceptions: 业务异常类型定义。
"""
