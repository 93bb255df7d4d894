"""アプリ全体で共有する設定読み込みロジック。"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Iterable

import boto3
from botocore.exceptions import ClientError
from dotenv import load_dotenv

from contact_mailer.pipeline.config import (
    DEFAULT_SPAM_KEYWORDS,
    BotCheckConfig,
    FormLimits,
    PipelineConfig,
    RateLimitConfig,
    SmtpConfig,
)

_DEFAULT_REGION = "ap-northeast-1"
_LOCAL_ENV = "local"
_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(slots=True)
class Settings:
    """環境非依存で参照できる設定値の集合。"""

    app_env: str
    region: str
    recipient_email: str
    mail_from: str | None = None
    mail_html: bool = True
    csrf_enabled: bool = True
    rate_limit_max_requests: int = 5
    rate_limit_window_seconds: int = 3600
    recaptcha_secret: str | None = None
    recaptcha_min_score: float = 0.5
    recaptcha_verify_url: str = "https://www.google.com/recaptcha/api/siteverify"
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_secure: str = "tls"
    log_file: str | None = None
    trusted_proxy_hops: int = 0
    spam_keywords: list[str] = field(default_factory=lambda: list(DEFAULT_SPAM_KEYWORDS))
    limits: FormLimits = field(default_factory=FormLimits)
    ssm_path_prefix: str | None = None

    @property
    def is_local(self) -> bool:
        return self.app_env == _LOCAL_ENV

    def to_pipeline_config(self) -> PipelineConfig:
        """リクエスト間で共有する不変の設定へ変換する。"""

        return PipelineConfig(
            recipient=self.recipient_email,
            html=self.mail_html,
            csrf_enabled=self.csrf_enabled,
            limits=self.limits,
            rate_limit=RateLimitConfig(
                max_requests=self.rate_limit_max_requests,
                window_seconds=self.rate_limit_window_seconds,
            ),
            smtp=SmtpConfig(
                host=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_username,
                password=self.smtp_password,
                secure=self.smtp_secure,
            ),
            bot_check=BotCheckConfig(
                secret=self.recaptcha_secret,
                min_score=self.recaptcha_min_score,
                verify_url=self.recaptcha_verify_url,
            ),
            spam_keywords=tuple(self.spam_keywords),
            mail_from=self.mail_from,
        )


def _load_json_list(raw: str | None) -> list[str] | None:
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:  # pragma: no cover - defensive
        raise ValueError("JSON 文字列のパースに失敗しました。") from exc
    if not isinstance(parsed, list):  # pragma: no cover - defensive
        raise ValueError("JSON 文字列は配列である必要があります。")
    return [str(item) for item in parsed]


def _get_required_env(name: str) -> str:
    value = os.getenv(name)
    if value is None:
        raise ValueError(f"環境変数 {name} が未設定です。")
    return value


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"環境変数 {name} は整数である必要があります。") from exc


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"環境変数 {name} は数値である必要があります。") from exc


def _load_limits() -> FormLimits:
    defaults = FormLimits()
    return FormLimits(
        name_min=_get_int("NAME_MIN_LENGTH", defaults.name_min),
        name_max=_get_int("NAME_MAX_LENGTH", defaults.name_max),
        subject_min=_get_int("SUBJECT_MIN_LENGTH", defaults.subject_min),
        subject_max=_get_int("SUBJECT_MAX_LENGTH", defaults.subject_max),
        message_min=_get_int("MESSAGE_MIN_LENGTH", defaults.message_min),
        message_max=_get_int("MESSAGE_MAX_LENGTH", defaults.message_max),
    )


def _fetch_ssm_parameters(
    region: str, names: Iterable[str], prefix: str, *, optional: Iterable[str] = ()
) -> dict[str, str]:
    name_list = [f"{prefix}/{name}" for name in names]
    optional_names = {f"{prefix}/{name}" for name in optional}
    client = boto3.client("ssm", region_name=region)
    try:
        resp = client.get_parameters(Names=name_list, WithDecryption=True)
    except ClientError as exc:  # pragma: no cover - boto3 例外ラップ
        raise RuntimeError("SSM パラメータ取得に失敗しました。") from exc

    found = {item["Name"]: item["Value"] for item in resp.get("Parameters", [])}
    missing = {name for name in name_list if name not in found and name not in optional_names}
    if missing:
        raise ValueError(f"SSM パラメータ未設定: {', '.join(sorted(missing))}")
    return found


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """環境に応じて `.env` または SSM から設定を構築する。"""

    app_env = os.getenv("APP_ENV", _LOCAL_ENV)
    if app_env == _LOCAL_ENV:
        load_dotenv()

    region = os.getenv("REGION", _DEFAULT_REGION)
    common = dict(
        app_env=app_env,
        region=region,
        mail_from=os.getenv("MAIL_FROM") or None,
        mail_html=_get_bool("MAIL_HTML", True),
        csrf_enabled=_get_bool("CSRF_ENABLED", True),
        rate_limit_max_requests=_get_int("RATE_LIMIT_MAX_REQUESTS", 5),
        rate_limit_window_seconds=_get_int("RATE_LIMIT_WINDOW_SECONDS", 3600),
        recaptcha_min_score=_get_float("RECAPTCHA_MIN_SCORE", 0.5),
        recaptcha_verify_url=os.getenv(
            "RECAPTCHA_VERIFY_URL", "https://www.google.com/recaptcha/api/siteverify"
        ),
        smtp_host=os.getenv("SMTP_HOST") or None,
        smtp_port=_get_int("SMTP_PORT", 587),
        smtp_username=os.getenv("SMTP_USERNAME") or None,
        smtp_secure=os.getenv("SMTP_SECURE", "tls").strip().lower(),
        log_file=os.getenv("CONTACT_LOG_FILE") or None,
        trusted_proxy_hops=_get_int("TRUSTED_PROXY_HOPS", 0),
        spam_keywords=_load_json_list(os.getenv("SPAM_KEYWORDS")) or list(DEFAULT_SPAM_KEYWORDS),
        limits=_load_limits(),
    )

    if app_env == _LOCAL_ENV:
        return Settings(
            recipient_email=_get_required_env("CONTACT_RECIPIENT"),
            recaptcha_secret=os.getenv("RECAPTCHA_SECRET") or None,
            smtp_password=os.getenv("SMTP_PASSWORD") or None,
            ssm_path_prefix=None,
            **common,
        )

    prefix = os.getenv("SSM_PATH_PREFIX", "/contact-mailer/prod")
    required_keys = ["mail/recipient"]
    optional_keys = ["recaptcha/secret", "smtp/password"]
    values = _fetch_ssm_parameters(
        region=region,
        names=required_keys + optional_keys,
        prefix=prefix,
        optional=optional_keys,
    )

    def from_ssm(key: str) -> str | None:
        return values.get(f"{prefix}/{key}") or None

    return Settings(
        recipient_email=from_ssm("mail/recipient") or "",
        recaptcha_secret=from_ssm("recaptcha/secret"),
        smtp_password=from_ssm("smtp/password"),
        ssm_path_prefix=prefix,
        **common,
    )
