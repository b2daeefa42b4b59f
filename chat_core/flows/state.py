"""State definition for the message send graph."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, TypedDict

from chat_core.domain.models import Exchange
from chat_core.navigation.identity import ChatIdentity


class SendStatus(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    RECONCILING = "reconciling"
    ROLLING_BACK = "rolling_back"


class SendState(TypedDict, total=False):
    """State shared across send graph nodes."""

    text: str
    identity: ChatIdentity
    path: str
    exchange: Exchange
    history: List[Dict[str, str]]
    conversation_id: str
    created: bool
    failed: bool
    result: Optional[str]
