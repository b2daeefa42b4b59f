"""后端接口集成层。

- registry: 接口路径配置。
- chat_api: 每个后端接口的异步封装，统一返回 ApiResult。
"""

from chat_core.providers.chat_api import ChatApi, completion_messages

__all__ = ["ChatApi", "completion_messages"]
