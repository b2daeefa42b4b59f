"""Navigation state and identity resolution."""

from chat_core.navigation.identity import ChatIdentity, IdentityResolver
from chat_core.navigation.state import NavigationState

__all__ = ["ChatIdentity", "IdentityResolver", "NavigationState"]
