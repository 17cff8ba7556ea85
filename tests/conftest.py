"""Pytest fixtures for docket-agent tests."""

from datetime import datetime, timedelta, timezone

import pytest

from src.ai.completion import ChatMessage, CompletionClient, CompletionResult, PROVIDER_LABELS
from src.alerts.channels import NotificationChannel
from src.alerts.dispatcher import NotificationConfig
from src.alerts.schemas import AIReview, Alert, AlertPayload
from src.config.settings import Settings
from src.storage.durable_store import InMemoryStore


class FakeCompletionClient(CompletionClient):
    """Scripted completion client recording every call.

    ``reply`` is a string (success), a CompletionResult, an exception to
    raise, or a callable taking the 1-based call number and returning one.
    """

    def __init__(self, reply: object = "Looks like a null dereference.") -> None:
        self.reply = reply
        self.calls: list[tuple[str, list[ChatMessage], str | None]] = []
        self.closed = False

    async def complete(
        self,
        provider: str,
        messages: list[ChatMessage],
        user_identifier: str | None = None,
    ) -> CompletionResult:
        self.calls.append((provider, messages, user_identifier))
        reply = self.reply(len(self.calls)) if callable(self.reply) else self.reply
        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, CompletionResult):
            return reply
        return CompletionResult(text=reply, provider_label=PROVIDER_LABELS[provider])

    async def close(self) -> None:
        self.closed = True


class FakeChannel(NotificationChannel):
    """Channel whose outcome is controlled per test."""

    def __init__(self, outcome: object = True) -> None:
        self.outcome = outcome
        self.sent: list[AlertPayload] = []

    @property
    def name(self) -> str:
        return "fake"

    async def send(self, payload: AlertPayload) -> bool:
        self.sent.append(payload)
        outcome = self.outcome(payload) if callable(self.outcome) else self.outcome
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def test_settings() -> Settings:
    """Settings configured for testing."""
    return Settings(
        environment="development",
        log_level="DEBUG",
        redis_url="redis://localhost:6379/1",
    )


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def fake_completion() -> FakeCompletionClient:
    return FakeCompletionClient()


@pytest.fixture
def fake_channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def fast_notifications() -> NotificationConfig:
    """Dispatcher config without the inter-item pause."""
    return NotificationConfig(inter_item_delay_seconds=0.0)


@pytest.fixture
def make_alert():
    """Factory for alerts with controllable age and review state."""

    def _make(
        title: str = "API Failure",
        severity: str = "high",
        minutes_old: float = 0,
        review: AIReview | None = None,
        **details,
    ) -> Alert:
        created = datetime.now(timezone.utc) - timedelta(minutes=minutes_old)
        return Alert(
            type=title,
            severity=severity,
            title=title,
            message=f"{title} observed",
            details=details,
            created_at=created,
            updated_at=created,
            ai_review=review,
        )

    return _make
