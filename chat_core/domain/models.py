"""客户端统一数据模型。

本模块定义了对话客户端在各组件之间共享的标准数据结构：

- Message: 一条对话消息（user/assistant），id 仅在客户端使用。
- Exchange: 一次乐观提交产生的 (用户消息, 助手占位) 消息对。
- Conversation: 当前会话的工作副本。
- Dialog: 对话配置模板（提示词参数、开场白）。
- ResponseEnvelope: 后端统一返回的 {code, message, data} 信封。

后端 JSON 与这些模型之间的转换集中在各自的 from_payload / to_payload 中。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple
from uuid import uuid4


# 消息角色（与后端 role 字段一致）
Role = Literal["user", "assistant"]
USER: Role = "user"
ASSISTANT: Role = "assistant"


def new_message_id() -> str:
    return uuid4().hex


@dataclass(frozen=True)
class Message:
    """一条对话消息。

    - id: 客户端生成的临时 id，发送给后端前会被去掉。
    - role: user / assistant。
    - content: 纯文本内容；助手占位消息为空串。
    - reference: 引用列表，仅助手消息可能携带。
    """

    role: Role
    content: str
    id: str = field(default_factory=new_message_id)
    reference: Optional[List[Dict[str, Any]]] = None

    def to_payload(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Message":
        return cls(
            role=payload.get("role") or ASSISTANT,
            content=payload.get("content") or "",
            id=payload.get("id") or new_message_id(),
            reference=payload.get("reference"),
        )


@dataclass(frozen=True)
class Exchange:
    """一次提交对应的消息对，整体追加、整体回滚。"""

    user: Message
    assistant: Message

    @classmethod
    def create(cls, text: str) -> "Exchange":
        return cls(
            user=Message(role=USER, content=text),
            assistant=Message(role=ASSISTANT, content="", reference=[]),
        )

    @property
    def messages(self) -> Tuple[Message, Message]:
        return self.user, self.assistant


@dataclass
class Conversation:
    """会话。

    id 为空串表示尚未持久化（新会话或仅含开场白的临时会话）。
    """

    id: str = ""
    dialog_id: str = ""
    name: str = ""
    messages: List[Message] = field(default_factory=list)
    reference: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def is_persisted(self) -> bool:
        return bool(self.id)

    def history_payload(self) -> List[Dict[str, str]]:
        """去掉客户端 id 后的消息历史，用于 completion 请求。"""

        return [m.to_payload() for m in self.messages]

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Conversation":
        return cls(
            id=payload.get("id") or "",
            dialog_id=payload.get("dialog_id") or "",
            name=payload.get("name") or "",
            messages=[Message.from_payload(m) for m in payload.get("message") or []],
            reference=list(payload.get("reference") or []),
        )


@dataclass
class DialogParameter:
    key: str
    optional: bool = False


@dataclass
class PromptConfig:
    parameters: List[DialogParameter] = field(default_factory=list)
    prologue: str = ""
    system: str = ""


@dataclass
class Dialog:
    """对话配置模板，客户端只读缓存一份“当前 dialog”。"""

    id: str = ""
    name: str = ""
    prompt_config: PromptConfig = field(default_factory=PromptConfig)

    @property
    def prologue(self) -> str:
        return self.prompt_config.prologue

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Dialog":
        raw_cfg = payload.get("prompt_config") or {}
        params = [
            DialogParameter(key=p.get("key", ""), optional=bool(p.get("optional", False)))
            for p in raw_cfg.get("parameters") or []
        ]
        return cls(
            id=payload.get("id") or "",
            name=payload.get("name") or "",
            prompt_config=PromptConfig(
                parameters=params,
                prologue=raw_cfg.get("prologue") or "",
                system=raw_cfg.get("system") or "",
            ),
        )


@dataclass
class ResponseEnvelope:
    """后端统一返回结构，code == 0 表示成功。"""

    code: int
    message: str = ""
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.code == 0

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ResponseEnvelope":
        # 旧版接口使用 retcode / retmsg
        code = payload.get("code", payload.get("retcode"))
        message = payload.get("message", payload.get("retmsg"))
        return cls(code=int(code) if code is not None else -1, message=message or "", data=payload.get("data"))
