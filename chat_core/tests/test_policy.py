import asyncio
import tempfile
from pathlib import Path

from chat_core.domain.exceptions import ApplicationError, AuthError, SoftWarning
from chat_core.domain.models import ResponseEnvelope
from chat_core.infrastructure.storage.credential_store import JsonCredentialStore
from chat_core.navigation.state import NavigationState
from chat_core.transport.policy import Outcome, ResponsePolicy


class NotifierStub:
    def __init__(self):
        self.errors = []
        self.messages = []

    def notify_error(self, message, description, duration=None):
        self.errors.append(message)

    def show_message(self, text):
        self.messages.append(text)


def _policy(root, **kw):
    creds = JsonCredentialStore(path=Path(root) / "c.json")
    return ResponsePolicy(NotifierStub(), creds, NavigationState("/chat"), **kw)


def test_default_code_table():
    with tempfile.TemporaryDirectory() as d:
        policy = _policy(d)
        assert policy.outcome_for(0) is Outcome.SUCCESS
        assert policy.outcome_for(100) is Outcome.SOFT_WARNING
        assert policy.outcome_for(401) is Outcome.AUTH_ERROR
        assert policy.outcome_for(500) is Outcome.APPLICATION_ERROR
        assert policy.outcome_for(-1) is Outcome.APPLICATION_ERROR


def test_injected_code_table():
    with tempfile.TemporaryDirectory() as d:
        policy = _policy(d, code_outcomes={0: Outcome.SUCCESS, 109: Outcome.AUTH_ERROR})
        assert policy.outcome_for(109) is Outcome.AUTH_ERROR
        assert policy.outcome_for(401) is Outcome.APPLICATION_ERROR


def test_apply_returns_classified_errors():
    with tempfile.TemporaryDirectory() as d:
        policy = _policy(d, login_path="/sign-in")

        async def run():
            return [
                await policy.apply(ResponseEnvelope(code=0)),
                await policy.apply(ResponseEnvelope(code=100, message="busy")),
                await policy.apply(ResponseEnvelope(code=500, message="boom")),
                await policy.apply(ResponseEnvelope(code=401, message="expired")),
            ]

        results = asyncio.run(run())
        assert results[0] == (Outcome.SUCCESS, None)
        assert isinstance(results[1][1], SoftWarning)
        assert isinstance(results[2][1], ApplicationError)
        assert results[2][1].extra["retcode"] == 500
        assert isinstance(results[3][1], AuthError)
        assert policy._navigation.path == "/sign-in"
        assert policy._notifier.messages == ["busy"]
        assert policy._notifier.errors == ["Hint : 500", "expired"]
