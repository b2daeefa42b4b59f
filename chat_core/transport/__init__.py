"""请求管线：出站鉴权与字段名转换、入站信封分类与统一提示。"""

from chat_core.transport.client import AbortSignal, ApiResult, RequestClient
from chat_core.transport.policy import Outcome, ResponsePolicy

__all__ = ["AbortSignal", "ApiResult", "Outcome", "RequestClient", "ResponsePolicy"]
