"""パイプラインのテスト用フェイクとファクトリ。"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Sequence

import pytest

from contact_mailer.pipeline import PipelineConfig, SubmissionPipeline
from contact_mailer.pipeline.dispatcher import MailDispatcher
from contact_mailer.pipeline.models import FormField, SubmissionRequest
from contact_mailer.pipeline.rate_limiter import RateLimiter
from contact_mailer.pipeline.renderer import ContentRenderer
from contact_mailer.pipeline.spam_filter import SpamFilter
from contact_mailer.pipeline.stores import InMemoryStore
from contact_mailer.pipeline.token_guard import TokenGuard
from contact_mailer.pipeline.validator import FormValidator

FIXED_NOW = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass
class RecordingTransport:
    """送信内容を記録するだけの既定経路。"""

    result: bool = True
    error: Exception | None = None
    calls: list[dict[str, Any]] = field(default_factory=list)

    def send_message(self, to: str, subject: str, body: str, headers: Sequence[str]) -> bool:
        self.calls.append({"to": to, "subject": subject, "body": body, "headers": list(headers)})
        if self.error is not None:
            raise self.error
        return self.result


@dataclass
class RecordingRemote:
    result: bool = True
    error: Exception | None = None
    calls: list[dict[str, Any]] = field(default_factory=list)

    def send_via_remote(self, config, to, subject, body, headers) -> bool:  # noqa: ANN001
        self.calls.append({"config": config, "to": to, "subject": subject})
        if self.error is not None:
            raise self.error
        return self.result


@dataclass
class RecordingSink:
    entries: list[tuple[datetime, str, str, str]] = field(default_factory=list)

    def append(self, timestamp: datetime, level: str, client_identity: str, message: str) -> None:
        self.entries.append((timestamp, level, client_identity, message))


def make_request(**overrides: Any) -> SubmissionRequest:
    values = {
        "name": "Jane Doe",
        "email": "jane@example.com",
        "subject": "Hello there",
        "message": "This is a valid message body.",
    }
    values.update({k: v for k, v in overrides.items() if k in values})
    request = SubmissionRequest(
        fields=(
            FormField("Name", values["name"], 2),
            FormField("Email", values["email"], 5),
            FormField("Subject", values["subject"], 3),
            FormField("Message", values["message"], 10),
        ),
        name=values["name"],
        email=values["email"],
        subject=values["subject"],
        message=values["message"],
        recipient="owner@example.com",
        client_identity="client-a",
    )
    extra = {k: v for k, v in overrides.items() if k not in values}
    return replace(request, **extra) if extra else request


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def build_pipeline(clock: FakeClock, store: InMemoryStore, transport: RecordingTransport, sink: RecordingSink):
    """設定を上書きしてパイプラインを組み立てる。既定は CSRF 無効・ボット判定なし。"""

    def _build(**overrides: Any) -> SubmissionPipeline:
        bot_verifier = overrides.pop("bot_verifier", None)
        dispatcher = overrides.pop("dispatcher", None) or MailDispatcher(transport)
        config = PipelineConfig(
            recipient="owner@example.com",
            html=overrides.pop("html", False),
            csrf_enabled=overrides.pop("csrf_enabled", False),
            **overrides,
        )
        return SubmissionPipeline(
            config,
            validator=FormValidator(config.limits),
            spam_filter=SpamFilter(config.spam_keywords),
            rate_limiter=RateLimiter(store, config.rate_limit, clock=clock),
            token_guard=TokenGuard(store),
            renderer=ContentRenderer(clock=lambda: FIXED_NOW),
            dispatcher=dispatcher,
            bot_verifier=bot_verifier,
            log_sink=sink,
            clock=lambda: FIXED_NOW,
        )

    return _build


@pytest.fixture
def make_submission():
    return make_request


@pytest.fixture
def fake_transport():
    """`RecordingTransport(result=..., error=...)` を作るファクトリ。"""

    return RecordingTransport


@pytest.fixture
def fake_remote():
    return RecordingRemote
