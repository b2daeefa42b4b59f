"""Chat Core 顶层包。

该包实现对话客户端的核心：导航身份解析、带拦截器的请求管线、
当前会话 store，以及乐观发送/回滚的消息发送状态机。
"""

from chat_core.api.session import ChatSession, get_default_session

__all__ = ["ChatSession", "get_default_session"]
