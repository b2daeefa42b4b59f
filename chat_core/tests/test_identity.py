import asyncio

from chat_core.navigation.identity import ChatIdentity, IdentityResolver
from chat_core.navigation.state import NavigationState


def test_resolve_missing_params_are_empty():
    resolver = IdentityResolver(NavigationState("/chat"))
    assert resolver.resolve() == ChatIdentity(dialog_id="", conversation_id="")
    assert resolver.shared_id() == ""


def test_from_url_and_shared_id():
    nav = NavigationState.from_url("/chat/share?shared_id=abc&dialog_id=D1&conversation_id=")
    resolver = IdentityResolver(nav)
    assert resolver.resolve() == ChatIdentity(dialog_id="D1", conversation_id="")
    assert resolver.shared_id() == "abc"


def test_set_conversation_id_notifies_subscribers():
    nav = NavigationState("/chat", {"dialog_id": "D1"})
    resolver = IdentityResolver(nav)
    seen = []

    async def listener(identity):
        seen.append(identity)

    resolver.subscribe(listener)
    asyncio.run(resolver.set_conversation_id("C1"))
    assert seen == [ChatIdentity("D1", "C1")]
    assert nav.get("conversation_id") == "C1"


def test_subscriber_not_called_when_identity_unchanged():
    nav = NavigationState("/chat", {"dialog_id": "D1", "conversation_id": "C1"})
    resolver = IdentityResolver(nav)
    seen = []

    async def listener(identity):
        seen.append(identity)

    resolver.subscribe(listener)

    async def run():
        await nav.set_query({"unrelated": "x"})
        await resolver.set_conversation_id("C1")

    asyncio.run(run())
    assert seen == []


def test_set_dialog_id_drops_conversation_keeps_shared():
    nav = NavigationState("/chat", {"dialog_id": "D1", "conversation_id": "C1", "shared_id": "tok"})
    resolver = IdentityResolver(nav)
    asyncio.run(resolver.set_dialog_id("D2"))
    assert resolver.resolve() == ChatIdentity("D2", "")
    assert resolver.shared_id() == "tok"


def test_unsubscribe():
    nav = NavigationState("/chat")
    resolver = IdentityResolver(nav)
    seen = []

    async def listener(identity):
        seen.append(identity)

    unsubscribe = resolver.subscribe(listener)
    unsubscribe()
    asyncio.run(resolver.set_dialog_id("D1"))
    assert seen == []
