from __future__ import annotations

import os

os.environ.setdefault("CONTACT_RECIPIENT", "owner@example.com")

import pytest

from contact_mailer.core import settings as core_settings

_OPTIONAL_ENV = (
    "APP_ENV",
    "MAIL_FROM",
    "MAIL_HTML",
    "CSRF_ENABLED",
    "RATE_LIMIT_MAX_REQUESTS",
    "RATE_LIMIT_WINDOW_SECONDS",
    "RECAPTCHA_SECRET",
    "RECAPTCHA_MIN_SCORE",
    "SMTP_HOST",
    "SMTP_USERNAME",
    "SMTP_PASSWORD",
    "CONTACT_LOG_FILE",
    "TRUSTED_PROXY_HOPS",
    "NAME_MIN_LENGTH",
    "SUBJECT_MIN_LENGTH",
    "MESSAGE_MIN_LENGTH",
    "SPAM_KEYWORDS",
)


@pytest.fixture(autouse=True)
def basic_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """アプリ初期化に必要な環境変数をテスト時にセットする。"""

    monkeypatch.setenv("CONTACT_RECIPIENT", "owner@example.com")
    monkeypatch.setenv("REGION", "ap-northeast-1")
    for name in _OPTIONAL_ENV:
        monkeypatch.delenv(name, raising=False)
    core_settings.load_settings.cache_clear()
