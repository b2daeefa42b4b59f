import asyncio
import json
import tempfile
from pathlib import Path

import httpx

from chat_core.domain.models import ASSISTANT, USER, Conversation, Message
from chat_core.domain.store import ConversationStore
from chat_core.flows.sender import MessageSender, normalize_input
from chat_core.flows.state import SendStatus
from chat_core.infrastructure.storage.credential_store import JsonCredentialStore
from chat_core.navigation.identity import IdentityResolver
from chat_core.navigation.state import NavigationState
from chat_core.providers.chat_api import ChatApi
from chat_core.transport.client import RequestClient
from chat_core.transport.policy import ResponsePolicy


class NotifierStub:
    def __init__(self):
        self.errors = []

    def notify_error(self, message, description, duration=None):
        self.errors.append((message, description))

    def show_message(self, text):
        pass


def ok(data=None):
    return {"code": 0, "message": "", "data": data}


def build_sender(root, routes, query, conversation=None):
    calls = []

    async def handler(request):
        calls.append(request)
        body = routes[request.url.path]
        if callable(body):
            body = body(request)
            if asyncio.iscoroutine(body):
                body = await body
        return httpx.Response(200, json=body)

    nav = NavigationState("/chat", query)
    identity = IdentityResolver(nav)
    creds = JsonCredentialStore(path=Path(root) / "c.json")
    notifier = NotifierStub()
    client = RequestClient(
        identity,
        creds,
        ResponsePolicy(notifier, creds, nav),
        base_url="http://backend",
        transport=httpx.MockTransport(handler),
    )
    store = ConversationStore(conversation)
    sender = MessageSender(ChatApi(client), store, identity)
    return sender, calls, notifier


def existing_conversation():
    return Conversation(
        id="C2",
        dialog_id="D1",
        messages=[
            Message(role=ASSISTANT, content="Hi, how can I help?"),
            Message(role=USER, content="q1"),
            Message(role=ASSISTANT, content="a1"),
        ],
    )


def test_completion_failure_rolls_back_and_restores_draft(monkeypatch):
    routes = {"/v1/conversation/completion": {"code": 500, "message": "LLM error", "data": None}}
    with tempfile.TemporaryDirectory() as d:
        sender, calls, notifier = build_sender(
            d, routes, {"dialog_id": "D1", "conversation_id": "C2"}, existing_conversation()
        )
        before = [(m.id, m.content) for m in sender.store.messages]
        rollbacks = []
        original = sender.store.rollback_exchange

        def counting(exchange):
            rollbacks.append(exchange)
            return original(exchange)

        monkeypatch.setattr(sender.store, "rollback_exchange", counting)
        sender.handle_input_change("Hello")
        res = asyncio.run(sender.press_enter())

        assert res.result == "rolled_back"
        assert len(rollbacks) == 1
        assert sender.value == "Hello"
        assert [(m.id, m.content) for m in sender.store.messages] == before
        assert notifier.errors == [("Hint : 500", "LLM error")]
        assert sender.status is SendStatus.IDLE


def test_completion_payload_has_history_without_client_ids():
    routes = {
        "/v1/conversation/completion": ok({"answer": "a2"}),
        "/v1/conversation/get": ok({"id": "C2", "dialog_id": "D1", "message": []}),
    }
    with tempfile.TemporaryDirectory() as d:
        sender, calls, _ = build_sender(
            d, routes, {"dialog_id": "D1", "conversation_id": "C2"}, existing_conversation()
        )
        asyncio.run(sender.send("  Hello  "))
        body = json.loads(calls[0].content)
        assert body == {
            "conversation_id": "C2",
            "messages": [
                {"role": "assistant", "content": "Hi, how can I help?"},
                {"role": "user", "content": "q1"},
                {"role": "assistant", "content": "a1"},
                {"role": "user", "content": "Hello"},
            ],
        }


def test_success_on_existing_conversation_refetches():
    server = {
        "id": "C2",
        "dialog_id": "D1",
        "message": [
            {"role": "assistant", "content": "Hi, how can I help?"},
            {"role": "user", "content": "Hello"},
            {"role": "assistant", "content": "Hello! What can I do?"},
        ],
    }
    routes = {"/v1/conversation/completion": ok(), "/v1/conversation/get": ok(server)}
    with tempfile.TemporaryDirectory() as d:
        sender, calls, _ = build_sender(d, routes, {"dialog_id": "D1", "conversation_id": "C2"})
        res = asyncio.run(sender.send("Hello"))
        assert res.result == "reconciled"
        assert [c.url.path for c in calls] == ["/v1/conversation/completion", "/v1/conversation/get"]
        assert calls[1].url.params["conversation_id"] == "C2"
        assert [m.content for m in sender.store.messages] == [
            "Hi, how can I help?",
            "Hello",
            "Hello! What can I do?",
        ]


def test_create_failure_rolls_back_without_completion():
    routes = {"/v1/conversation/set": {"code": 102, "message": "dialog missing", "data": None}}
    with tempfile.TemporaryDirectory() as d:
        sender, calls, _ = build_sender(d, routes, {"dialog_id": "D1"})
        sender.store.seed_with_prologue("D1", "Hi")
        res = asyncio.run(sender.send("Hello"))
        assert res.result == "rolled_back"
        assert [c.url.path for c in calls] == ["/v1/conversation/set"]
        assert [m.content for m in sender.store.messages] == ["Hi"]
        assert sender.value == "Hello"
        body = json.loads(calls[0].content)
        assert body == {"dialog_id": "D1", "name": "Hello", "message": [{"role": "assistant", "content": "Hello"}]}


def test_empty_input_is_a_no_op():
    with tempfile.TemporaryDirectory() as d:
        sender, calls, _ = build_sender(d, {}, {"dialog_id": "D1", "conversation_id": "C2"})
        sender.handle_input_change("   ")
        res = asyncio.run(sender.press_enter())
        assert res.result == "empty"
        assert not res.accepted
        assert calls == []
        assert sender.store.messages == []


def test_submissions_while_busy_are_ignored():
    with tempfile.TemporaryDirectory() as d:

        async def run():
            release = asyncio.Event()

            async def slow_completion(request):
                await release.wait()
                return {"code": 500, "message": "late", "data": None}

            sender, calls, _ = build_sender(
                d,
                {"/v1/conversation/completion": slow_completion},
                {"dialog_id": "D1", "conversation_id": "C2"},
                existing_conversation(),
            )
            first = asyncio.ensure_future(sender.send("first"))
            await asyncio.sleep(0)
            assert sender.busy
            assert [m.content for m in sender.store.messages][-2:] == ["first", ""]
            second = await sender.send("second")
            release.set()
            return sender, calls, second, await first

        sender, calls, second, first = asyncio.run(run())
        assert second.result == "ignored"
        assert first.result == "rolled_back"
        assert len(calls) == 1
        assert not sender.busy


def test_result_discarded_when_identity_changed_in_flight():
    with tempfile.TemporaryDirectory() as d:
        holder = {}

        async def completion(request):
            await holder["sender"].identity.set_conversation_id("C9")
            return {"code": 500, "message": "late", "data": None}

        sender, calls, _ = build_sender(
            d,
            {"/v1/conversation/completion": completion},
            {"dialog_id": "D1", "conversation_id": "C2"},
            existing_conversation(),
        )
        holder["sender"] = sender
        res = asyncio.run(sender.send("Hello"))
        assert res.result == "discarded"
        assert [m.content for m in sender.store.messages][-2:] == ["Hello", ""]
        assert sender.value == ""


def test_send_disabled_without_dialog_and_conversation():
    with tempfile.TemporaryDirectory() as d:
        sender, _, _ = build_sender(d, {}, {})
        assert sender.send_disabled
        sender2, _, _ = build_sender(d, {}, {"dialog_id": "D1"})
        assert not sender2.send_disabled


def test_submit_without_dialog_and_conversation_is_ignored():
    with tempfile.TemporaryDirectory() as d:
        sender, calls, _ = build_sender(d, {}, {}, existing_conversation())
        before = [(m.id, m.content) for m in sender.store.messages]
        sender.handle_input_change("Hello")
        res = asyncio.run(sender.press_enter())
        assert res.result == "ignored"
        assert sender.value == "Hello"
        assert asyncio.run(sender.send("Hello")).result == "ignored"
        assert calls == []
        assert [(m.id, m.content) for m in sender.store.messages] == before


def test_normalize_input():
    assert normalize_input("a\\nb\\tc") == "a\nb\tc"
