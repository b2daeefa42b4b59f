"""对外的会话服务。

ChatSession 把各组件装配在一起：订阅导航身份，身份变化时拉取 dialog、
会话列表和当前会话（或用开场白生成临时会话），并提供发送消息、
会话/dialog 管理、API token、使用统计等接口。
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional

import httpx

from chat_core.domain.models import ASSISTANT, Conversation, Dialog, Message, new_message_id
from chat_core.domain.store import ConversationStore
from chat_core.flows.sender import MessageSender
from chat_core.infrastructure.logging.logger import logger
from chat_core.infrastructure.storage.credential_store import CredentialStore, JsonCredentialStore
from chat_core.navigation.identity import ChatIdentity, IdentityResolver
from chat_core.navigation.state import NavigationState
from chat_core.providers.chat_api import ChatApi
from chat_core.transport.client import ApiResult, RequestClient
from chat_core.transport.notifier import LoggingNotifier, Notifier
from chat_core.transport.policy import ResponsePolicy

NEW_CONVERSATION_NAME = "New conversation"
DEFAULT_PARAMETER = "knowledge"
STATS_RANGE_DAYS = 7


@dataclass
class VariableRow:
    """dialog 提示词参数在编辑表格中的一行。"""

    key: str
    variable: str
    optional: bool


def default_stats_range(today: Optional[date] = None) -> Dict[str, str]:
    today = today or date.today()
    start = today - timedelta(days=STATS_RANGE_DAYS)
    return {"from_date": start.strftime("%Y-%m-%d"), "to_date": today.strftime("%Y-%m-%d")}


class ChatSession:
    def __init__(
        self,
        navigation: Optional[NavigationState] = None,
        credentials: Optional[CredentialStore] = None,
        notifier: Optional[Notifier] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.navigation = navigation or NavigationState()
        self.identity = IdentityResolver(self.navigation)
        self.credentials = credentials or JsonCredentialStore()
        self.notifier = notifier or LoggingNotifier()
        self.policy = ResponsePolicy(self.notifier, self.credentials, self.navigation)
        self.client = RequestClient(
            self.identity,
            self.credentials,
            self.policy,
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )
        self.api = ChatApi(self.client)
        self.store = ConversationStore()
        self.sender = MessageSender(self.api, self.store, self.identity)

        self.current_dialog = Dialog()
        self.dialog_list: List[Dialog] = []
        self.conversation_list: List[Conversation] = []
        self.token_list: List[Dict[str, Any]] = []
        self.stats: Dict[str, Any] = {}
        self._loaded = ChatIdentity()
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def current_conversation(self) -> Conversation:
        return self.store.current_conversation

    async def start(self) -> None:
        """订阅导航身份并按当前身份完成首次加载。"""

        if self._unsubscribe is None:
            self._unsubscribe = self.identity.subscribe(self._on_identity_change)
        await self._on_identity_change(self.identity.resolve(), force=True)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def _on_identity_change(self, identity: ChatIdentity, force: bool = False) -> None:
        previous = self._loaded
        self._loaded = identity
        logger.info(
            "session.identity",
            extra={"extra": {"dialog_id": identity.dialog_id, "conversation_id": identity.conversation_id}},
        )
        if identity.dialog_id and (force or identity.dialog_id != previous.dialog_id):
            await self.fetch_dialog(identity.dialog_id)
            await self.fetch_conversation_list(identity.dialog_id)

        if identity.conversation_id:
            await self.sender.fetch_conversation(identity.conversation_id)
        elif identity.dialog_id:
            self.store.seed_with_prologue(identity.dialog_id, self.current_dialog.prologue)

    # ---- dialog ----

    async def fetch_dialog(self, dialog_id: str) -> ApiResult:
        ret = await self.api.get_dialog(dialog_id)
        if ret.ok and isinstance(ret.data, dict):
            self.current_dialog = Dialog.from_payload(ret.data)
        return ret

    async def fetch_dialog_list(self) -> ApiResult:
        ret = await self.api.list_dialogs()
        if ret.ok:
            self.dialog_list = [Dialog.from_payload(d) for d in ret.data or []]
        return ret

    async def select_first_dialog(self) -> List[Dialog]:
        ret = await self.fetch_dialog_list()
        if ret.ok and self.dialog_list:
            await self.click_dialog(self.dialog_list[0].id)
        return self.dialog_list

    async def click_dialog(self, dialog_id: str) -> None:
        await self.identity.set_dialog_id(dialog_id)

    async def save_dialog(self, dialog: Dict[str, Any]) -> ApiResult:
        ret = await self.api.set_dialog(dialog)
        if ret.ok:
            await self.fetch_dialog_list()
        return ret

    async def remove_dialogs(self, dialog_ids: List[str]) -> ApiResult:
        ret = await self.api.remove_dialogs(dialog_ids)
        if ret.ok:
            await self.fetch_dialog_list()
        return ret

    def reset_current_dialog(self) -> None:
        self.current_dialog = Dialog()

    def prompt_config_parameters(self) -> List[VariableRow]:
        if not self.current_dialog.id:
            # 新建的 dialog 默认带一个必填参数
            return [VariableRow(key=new_message_id(), variable=DEFAULT_PARAMETER, optional=False)]
        return [
            VariableRow(key=new_message_id(), variable=p.key, optional=p.optional)
            for p in self.current_dialog.prompt_config.parameters
        ]

    # ---- conversation ----

    async def fetch_conversation_list(self, dialog_id: str) -> ApiResult:
        ret = await self.api.list_conversations(dialog_id)
        if ret.ok:
            self.conversation_list = [Conversation.from_payload(c) for c in ret.data or []]
        return ret

    def derived_conversation_list(self) -> List[Conversation]:
        """会话列表；选中 dialog 时在最前面插入一条未保存的临时会话。"""

        dialog_id = self.identity.resolve().dialog_id
        if not dialog_id:
            return list(self.conversation_list)
        temporary = Conversation(
            id="",
            dialog_id=dialog_id,
            name=NEW_CONVERSATION_NAME,
            messages=[Message(role=ASSISTANT, content=self.current_dialog.prologue)],
        )
        return [temporary, *self.conversation_list]

    async def click_conversation(self, conversation_id: str) -> None:
        await self.identity.set_conversation_id(conversation_id)

    async def remove_conversations(self, conversation_ids: List[str]) -> ApiResult:
        dialog_id = self.identity.resolve().dialog_id
        ret = await self.api.remove_conversations(conversation_ids, dialog_id)
        if ret.ok:
            await self.fetch_conversation_list(dialog_id)
            await self.click_conversation("")
        return ret

    async def rename_conversation(self, conversation_id: str, name: str) -> ApiResult:
        ret = await self.api.get_conversation(conversation_id)
        if not ret.ok:
            return ret
        payload = dict(ret.data or {})
        payload.update({"conversation_id": conversation_id, "name": name})
        ret = await self.api.set_conversation(payload)
        if ret.ok:
            await self.fetch_conversation_list(self.identity.resolve().dialog_id)
        return ret

    # ---- api token & stats ----

    async def list_tokens(self, dialog_id: str) -> ApiResult:
        ret = await self.api.list_tokens(dialog_id)
        if ret.ok:
            self.token_list = list(ret.data or [])
        return ret

    async def create_token(self, dialog_id: str) -> ApiResult:
        ret = await self.api.create_token(dialog_id)
        if ret.ok:
            await self.list_tokens(dialog_id)
        return ret

    async def remove_token(self, dialog_id: str, token: str, tenant_id: str) -> ApiResult:
        ret = await self.api.remove_tokens(dialog_id, [token], tenant_id)
        if ret.ok:
            await self.list_tokens(dialog_id)
        return ret

    async def fetch_stats(self, from_date: Optional[str] = None, to_date: Optional[str] = None) -> ApiResult:
        rng = default_stats_range()
        ret = await self.api.get_stats(from_date or rng["from_date"], to_date or rng["to_date"])
        if ret.ok and isinstance(ret.data, dict):
            self.stats = ret.data
        return ret


_session: Optional[ChatSession] = None


def get_default_session() -> ChatSession:
    """获取默认的 ChatSession 实例（单例）。"""
    global _session
    if _session is None:
        _session = ChatSession()
    return _session
