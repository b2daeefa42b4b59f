"""LangGraph construction and node implementations for sending a message.

    START ─┬─ conversation_id 为空 ─> create ─┬─ 成功 ─> complete
           └─ 已有 conversation_id ──────────┘  └─ 失败 ─> rollback
    complete ─┬─ code == 0 ─> reconcile ─> END
              └─ 其他 ──────> rollback ──> END

乐观追加在进入图之前由 MessageSender 同步完成；reconcile / rollback
只在当前身份与提交时的快照一致时生效，否则丢弃结果。
"""

from __future__ import annotations

from typing import Protocol

from langgraph.graph import END, START, StateGraph
from langgraph.graph.state import CompiledStateGraph

from chat_core.domain.exceptions import StoreError
from chat_core.domain.models import ASSISTANT
from chat_core.domain.store import ConversationStore
from chat_core.flows.state import SendState, SendStatus
from chat_core.infrastructure.logging.logger import logger
from chat_core.navigation.identity import IdentityResolver
from chat_core.providers.chat_api import ChatApi

RESULT_RECONCILED = "reconciled"
RESULT_ROLLED_BACK = "rolled_back"
RESULT_DISCARDED = "discarded"


class SendHooks(Protocol):
    api: ChatApi
    store: ConversationStore
    identity: IdentityResolver

    def set_status(self, status: SendStatus) -> None:
        ...

    def restore_draft(self, text: str) -> None:
        ...

    async def fetch_conversation(self, conversation_id: str) -> bool:
        ...


async def create_node(state: SendState, hooks: SendHooks) -> SendState:
    text = state["text"]
    ret = await hooks.api.set_conversation(
        {
            "dialog_id": state["identity"].dialog_id,
            "name": text,
            "message": [{"role": ASSISTANT, "content": text}],
        }
    )
    new_id = (ret.data or {}).get("id") if ret.ok and isinstance(ret.data, dict) else None
    if not new_id:
        logger.info("send.create_failed", extra={"extra": {"retcode": ret.code, "outcome": ret.outcome.value}})
        state["failed"] = True
        return state
    logger.info("send.created", extra={"extra": {"conversation_id": new_id}})
    state["conversation_id"] = new_id
    state["created"] = True
    return state


async def complete_node(state: SendState, hooks: SendHooks) -> SendState:
    ret = await hooks.api.complete_conversation(state["conversation_id"], state["history"])
    state["failed"] = not ret.ok
    logger.info(
        "send.completed",
        extra={"extra": {"conversation_id": state["conversation_id"], "ok": ret.ok, "retcode": ret.code}},
    )
    return state


def _identity_unchanged(state: SendState, hooks: SendHooks) -> bool:
    """用户是否仍停留在提交时的会话上。

    页面路径变化（例如 401 跳转登录页）不算切换会话，结果照常处理。
    """

    current = hooks.identity.resolve()
    if current == state["identity"]:
        return True
    path = hooks.identity.navigation.path
    if path != state.get("path", path):
        logger.info("send.left_view", extra={"extra": {"submitted_path": state["path"], "current_path": path}})
        return True
    logger.info(
        "send.discarded",
        extra={"extra": {"submitted": str(state["identity"]), "current": str(current)}},
    )
    return False


async def reconcile_node(state: SendState, hooks: SendHooks) -> SendState:
    if not _identity_unchanged(state, hooks):
        state["result"] = RESULT_DISCARDED
        return state
    hooks.set_status(SendStatus.RECONCILING)
    if state.get("created"):
        # 导航到新会话，由订阅方重新拉取
        await hooks.identity.set_conversation_id(state["conversation_id"])
    else:
        await hooks.fetch_conversation(state["conversation_id"])
    state["result"] = RESULT_RECONCILED
    return state


async def rollback_node(state: SendState, hooks: SendHooks) -> SendState:
    if not _identity_unchanged(state, hooks):
        state["result"] = RESULT_DISCARDED
        return state
    hooks.set_status(SendStatus.ROLLING_BACK)
    hooks.restore_draft(state["text"])
    try:
        hooks.store.rollback_exchange(state["exchange"])
    except StoreError as e:
        # 工作副本已被整体替换，乐观消息不在了
        logger.warning("send.rollback_skipped", extra={"extra": {"reason": e.code}})
    state["result"] = RESULT_ROLLED_BACK
    return state


def start_router(state: SendState) -> str:
    return "complete" if state.get("conversation_id") else "create"


def create_router(state: SendState) -> str:
    return "rollback" if state.get("failed") else "complete"


def complete_router(state: SendState) -> str:
    return "rollback" if state.get("failed") else "reconcile"


def build_send_graph(hooks: SendHooks) -> CompiledStateGraph:
    async def _create(s: SendState) -> SendState:
        return await create_node(s, hooks)

    async def _complete(s: SendState) -> SendState:
        return await complete_node(s, hooks)

    async def _reconcile(s: SendState) -> SendState:
        return await reconcile_node(s, hooks)

    async def _rollback(s: SendState) -> SendState:
        return await rollback_node(s, hooks)

    graph = StateGraph(SendState)
    graph.add_node("create", _create)
    graph.add_node("complete", _complete)
    graph.add_node("reconcile", _reconcile)
    graph.add_node("rollback", _rollback)
    graph.add_conditional_edges(START, start_router, {"create": "create", "complete": "complete"})
    graph.add_conditional_edges("create", create_router, {"complete": "complete", "rollback": "rollback"})
    graph.add_conditional_edges("complete", complete_router, {"reconcile": "reconcile", "rollback": "rollback"})
    graph.add_edge("reconcile", END)
    graph.add_edge("rollback", END)
    return graph.compile()
