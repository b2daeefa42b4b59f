"""从导航查询参数解析当前 (dialog_id, conversation_id)。

conversation_id 为空串表示“新建一个尚未保存的会话”，
非空表示“加载并展示该已持久化会话”。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

from chat_core.config.settings import settings
from chat_core.navigation.state import NavigationState

DIALOG_ID_PARAM = "dialog_id"
CONVERSATION_ID_PARAM = "conversation_id"

IdentityListener = Callable[["ChatIdentity"], Awaitable[None]]


@dataclass(frozen=True)
class ChatIdentity:
    dialog_id: str = ""
    conversation_id: str = ""


class IdentityResolver:
    def __init__(self, navigation: NavigationState, shared_param: Optional[str] = None):
        self._navigation = navigation
        self._shared_param = shared_param or settings.shared_token_param

    @property
    def navigation(self) -> NavigationState:
        return self._navigation

    def resolve(self) -> ChatIdentity:
        return ChatIdentity(
            dialog_id=self._navigation.get(DIALOG_ID_PARAM),
            conversation_id=self._navigation.get(CONVERSATION_ID_PARAM),
        )

    def shared_id(self) -> str:
        return self._navigation.get(self._shared_param)

    async def set_conversation_id(self, conversation_id: str) -> None:
        await self._navigation.set_query({CONVERSATION_ID_PARAM: conversation_id})

    async def set_dialog_id(self, dialog_id: str) -> None:
        """切换 dialog 时开启一组新的查询参数，之前的 conversation_id 不保留。"""

        params: Dict[str, Optional[str]] = {DIALOG_ID_PARAM: dialog_id}
        shared = self.shared_id()
        if shared:
            params[self._shared_param] = shared
        await self._navigation.set_query(params, replace=True)

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """仅在解析出的身份真正变化时回调 listener。"""

        last = {"identity": self.resolve()}

        async def on_navigation(_: NavigationState) -> None:
            identity = self.resolve()
            if identity == last["identity"]:
                return
            last["identity"] = identity
            await listener(identity)

        return self._navigation.subscribe(on_navigation)
