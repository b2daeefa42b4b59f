"""当前会话的状态容器。

store 只持有一份“当前会话”工作副本，所有修改都通过 dispatch 一组
封闭的命令完成：

- Load: 用服务端拉取的会话整体替换工作副本（后到者覆盖）。
- SeedWithPrologue: 未选中会话时，用 dialog 开场白生成临时会话。
- AppendExchange: 乐观追加一对 (用户消息, 助手占位)。
- RollbackExchange: 整体移除某个 exchange 的两条消息。

每条命令都会整体替换 messages 列表，读者不会看到只追加了一半的状态。
"""

from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Union

from chat_core.domain.exceptions import StoreError
from chat_core.domain.models import ASSISTANT, USER, Conversation, Exchange, Message
from chat_core.infrastructure.logging.logger import logger


@dataclass(frozen=True)
class Load:
    conversation: Conversation


@dataclass(frozen=True)
class SeedWithPrologue:
    dialog_id: str
    prologue: str


@dataclass(frozen=True)
class AppendExchange:
    exchange: Exchange


@dataclass(frozen=True)
class RollbackExchange:
    exchange: Exchange


StoreCommand = Union[Load, SeedWithPrologue, AppendExchange, RollbackExchange]
StoreListener = Callable[[Conversation], None]


class ConversationStore:
    def __init__(self, conversation: Optional[Conversation] = None):
        self._current = conversation or Conversation()
        self._listeners: List[StoreListener] = []

    @property
    def current_conversation(self) -> Conversation:
        return self._current

    @property
    def messages(self) -> List[Message]:
        return list(self._current.messages)

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, command: StoreCommand) -> Conversation:
        if isinstance(command, Load):
            nxt = command.conversation
        elif isinstance(command, SeedWithPrologue):
            nxt = Conversation(
                id="",
                dialog_id=command.dialog_id,
                messages=[Message(role=ASSISTANT, content=command.prologue)],
            )
        elif isinstance(command, AppendExchange):
            nxt = replace(self._current, messages=[*self._current.messages, *command.exchange.messages])
        elif isinstance(command, RollbackExchange):
            nxt = replace(self._current, messages=self._without(command.exchange))
        else:
            raise StoreError(code="UNKNOWN_COMMAND", message=type(command).__name__)

        self._current = nxt
        logger.info(
            "store.dispatch",
            extra={"extra": {"command": type(command).__name__, "messages": len(nxt.messages)}},
        )
        for listener in list(self._listeners):
            listener(nxt)
        return nxt

    # ---- 便捷方法 ----

    def load(self, conversation: Conversation) -> Conversation:
        return self.dispatch(Load(conversation))

    def seed_with_prologue(self, dialog_id: str, prologue: str) -> Conversation:
        return self.dispatch(SeedWithPrologue(dialog_id=dialog_id, prologue=prologue))

    def append_exchange(self, text: str) -> Exchange:
        exchange = Exchange.create(text)
        self.dispatch(AppendExchange(exchange))
        return exchange

    def rollback_exchange(self, exchange: Exchange) -> Conversation:
        return self.dispatch(RollbackExchange(exchange))

    def rollback_last_exchange(self) -> Conversation:
        """移除最后两条消息，要求它们正是上一次 append_exchange 追加的。"""

        msgs = self._current.messages
        if len(msgs) < 2 or msgs[-2].role != USER or msgs[-1].role != ASSISTANT:
            raise StoreError(code="NO_PENDING_EXCHANGE", message="last two messages are not an exchange")
        return self.dispatch(RollbackExchange(Exchange(user=msgs[-2], assistant=msgs[-1])))

    def _without(self, exchange: Exchange) -> List[Message]:
        msgs = self._current.messages
        ids = [m.id for m in msgs]
        try:
            idx = ids.index(exchange.user.id)
        except ValueError:
            raise StoreError(code="EXCHANGE_NOT_FOUND", message=exchange.user.id) from None
        if idx + 1 >= len(msgs) or msgs[idx + 1].id != exchange.assistant.id:
            raise StoreError(code="EXCHANGE_NOT_FOUND", message=exchange.assistant.id)
        return msgs[:idx] + msgs[idx + 2:]
