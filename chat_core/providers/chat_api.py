"""对话后端接口。

每个方法对应一个后端接口，统一返回 ApiResult；错误提示已经由请求管线完成，
这里不做任何额外处理。
"""

from typing import Any, Dict, List, Optional

from chat_core.domain.models import Message
from chat_core.providers.registry import get_endpoint
from chat_core.transport.client import AbortSignal, ApiResult, RequestClient


class ChatApi:
    def __init__(self, client: RequestClient):
        self._client = client

    async def _call(self, endpoint: str, **kwargs: Any) -> ApiResult:
        ep = get_endpoint(endpoint)
        return await self._client.request(ep.method, ep.url, **kwargs)

    # ---- dialog ----

    async def list_dialogs(self) -> ApiResult:
        return await self._call("list_dialog")

    async def get_dialog(self, dialog_id: str) -> ApiResult:
        return await self._call("get_dialog", params={"dialog_id": dialog_id})

    async def set_dialog(self, dialog: Dict[str, Any]) -> ApiResult:
        return await self._call("set_dialog", json=dialog)

    async def remove_dialogs(self, dialog_ids: List[str]) -> ApiResult:
        return await self._call("remove_dialog", json={"dialog_ids": dialog_ids})

    # ---- conversation ----

    async def list_conversations(self, dialog_id: str) -> ApiResult:
        return await self._call("list_conversation", params={"dialog_id": dialog_id})

    async def get_conversation(self, conversation_id: str) -> ApiResult:
        return await self._call("get_conversation", params={"conversation_id": conversation_id})

    async def set_conversation(self, payload: Dict[str, Any]) -> ApiResult:
        """新建（不带 conversation_id）或更新会话。"""

        return await self._call("set_conversation", json=payload)

    async def remove_conversations(self, conversation_ids: List[str], dialog_id: str) -> ApiResult:
        return await self._call(
            "remove_conversation",
            json={"conversation_ids": conversation_ids, "dialog_id": dialog_id},
        )

    async def complete_conversation(
        self,
        conversation_id: str,
        messages: List[Dict[str, str]],
        signal: Optional[AbortSignal] = None,
    ) -> ApiResult:
        return await self._call(
            "complete_conversation",
            json={"conversation_id": conversation_id, "messages": messages},
            signal=signal,
        )

    # ---- api token & stats ----

    async def list_tokens(self, dialog_id: str) -> ApiResult:
        return await self._call("list_token", params={"dialog_id": dialog_id})

    async def create_token(self, dialog_id: str) -> ApiResult:
        return await self._call("create_token", json={"dialog_id": dialog_id})

    async def remove_tokens(self, dialog_id: str, tokens: List[str], tenant_id: str) -> ApiResult:
        return await self._call(
            "remove_token",
            json={"dialog_id": dialog_id, "tokens": tokens, "tenant_id": tenant_id},
        )

    async def get_stats(self, from_date: str, to_date: str) -> ApiResult:
        return await self._call("get_stats", params={"from_date": from_date, "to_date": to_date})


def completion_messages(history: List[Message], text: str) -> List[Dict[str, str]]:
    """completion 请求的 messages：历史消息（去掉客户端 id）加上本次用户输入。"""

    return [m.to_payload() for m in history] + [{"role": "user", "content": text}]
