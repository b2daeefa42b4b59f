"""High-level entry point for sending a chat message.

MessageSender 持有输入框草稿和 busy 标记，一次只允许一个进行中的发送：

1. 同步乐观追加 exchange（用户消息 + 助手占位）。
2. 运行发送图：必要时先建会话，再调用 completion。
3. 成功则重新拉取会话覆盖乐观副本；失败则恢复草稿并回滚 exchange。
"""

from __future__ import annotations

from dataclasses import dataclass

from chat_core.domain.models import Conversation
from chat_core.domain.store import ConversationStore
from chat_core.flows.send_graph import build_send_graph
from chat_core.flows.state import SendState, SendStatus
from chat_core.infrastructure.logging.logger import logger
from chat_core.navigation.identity import IdentityResolver
from chat_core.providers.chat_api import ChatApi, completion_messages

RESULT_IGNORED = "ignored"
RESULT_EMPTY = "empty"


@dataclass
class SendResult:
    result: str
    conversation_id: str = ""

    @property
    def accepted(self) -> bool:
        return self.result not in (RESULT_IGNORED, RESULT_EMPTY)


def normalize_input(raw: str) -> str:
    """输入框中的字面量 \\n / \\t 转成真实换行和制表符。"""

    return raw.replace("\\n", "\n").replace("\\t", "\t")


async def fetch_conversation(api: ChatApi, store: ConversationStore, conversation_id: str) -> bool:
    """按 id 拉取会话并整体载入 store，返回是否成功。"""

    ret = await api.get_conversation(conversation_id)
    if not ret.ok or not isinstance(ret.data, dict):
        return False
    store.load(Conversation.from_payload(ret.data))
    return True


class MessageSender:
    def __init__(self, api: ChatApi, store: ConversationStore, identity: IdentityResolver):
        self.api = api
        self.store = store
        self.identity = identity
        self.value = ""
        self._status = SendStatus.IDLE
        self._graph = build_send_graph(self)

    @property
    def status(self) -> SendStatus:
        return self._status

    @property
    def busy(self) -> bool:
        return self._status is not SendStatus.IDLE

    @property
    def send_disabled(self) -> bool:
        identity = self.identity.resolve()
        return identity.dialog_id == "" and identity.conversation_id == ""

    def set_status(self, status: SendStatus) -> None:
        self._status = status

    def restore_draft(self, text: str) -> None:
        self.value = text

    def handle_input_change(self, raw: str) -> None:
        self.value = normalize_input(raw)

    async def fetch_conversation(self, conversation_id: str) -> bool:
        return await fetch_conversation(self.api, self.store, conversation_id)

    async def press_enter(self) -> SendResult:
        """回车提交当前草稿；忙碌或不可发送时直接忽略，草稿保持不变。"""

        if self.busy or self.send_disabled:
            return SendResult(result=RESULT_IGNORED)
        text = self.value
        self.value = ""
        return await self.send(text)

    async def send(self, raw_text: str) -> SendResult:
        if self.busy:
            logger.info("send.ignored_busy")
            return SendResult(result=RESULT_IGNORED)
        if self.send_disabled:
            logger.info("send.ignored_no_dialog")
            return SendResult(result=RESULT_IGNORED)
        text = (raw_text or "").strip()
        if not text:
            return SendResult(result=RESULT_EMPTY)

        identity = self.identity.resolve()
        self._status = SendStatus.SENDING
        try:
            # 历史取追加之前的副本，本次输入单独附在末尾
            history = completion_messages(self.store.messages, text)
            exchange = self.store.append_exchange(text)
            state: SendState = {
                "text": text,
                "identity": identity,
                "path": self.identity.navigation.path,
                "exchange": exchange,
                "history": history,
                "conversation_id": identity.conversation_id,
                "created": False,
                "failed": False,
                "result": None,
            }
            logger.info(
                "send.start",
                extra={"extra": {"dialog_id": identity.dialog_id, "conversation_id": identity.conversation_id}},
            )
            final = await self._graph.ainvoke(state)
        finally:
            self._status = SendStatus.IDLE
        result = SendResult(result=final.get("result") or "", conversation_id=final.get("conversation_id") or "")
        logger.info("send.end", extra={"extra": {"result": result.result, "conversation_id": result.conversation_id}})
        return result
