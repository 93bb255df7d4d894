"""パイプライン起動前に一度だけ組み立てる不変の設定。"""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_SPAM_KEYWORDS: tuple[str, ...] = (
    "viagra",
    "casino",
    "lottery",
    "prize",
    "click here",
    "buy now",
)


@dataclass(frozen=True, slots=True)
class FormLimits:
    """入力項目ごとの文字数の上下限。"""

    name_min: int = 2
    name_max: int = 100
    subject_min: int = 3
    subject_max: int = 200
    message_min: int = 10
    message_max: int = 5000


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    max_requests: int = 5
    window_seconds: int = 3600


@dataclass(frozen=True, slots=True)
class SmtpConfig:
    """任意の SMTP リレー設定。"""

    host: str | None = None
    port: int = 587
    username: str | None = None
    password: str | None = None
    secure: str = "tls"

    @property
    def is_complete(self) -> bool:
        return bool(self.host and self.username and self.password)

    @property
    def is_configured(self) -> bool:
        return bool(self.host or self.username or self.password)


@dataclass(frozen=True, slots=True)
class BotCheckConfig:
    secret: str | None = None
    min_score: float = 0.5
    verify_url: str = "https://www.google.com/recaptcha/api/siteverify"
    timeout_seconds: float = 10.0

    @property
    def enabled(self) -> bool:
        return bool(self.secret)


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    """`SubmissionPipeline` が参照する設定一式。"""

    recipient: str
    html: bool = True
    csrf_enabled: bool = True
    limits: FormLimits = field(default_factory=FormLimits)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    smtp: SmtpConfig = field(default_factory=SmtpConfig)
    bot_check: BotCheckConfig = field(default_factory=BotCheckConfig)
    spam_keywords: tuple[str, ...] = DEFAULT_SPAM_KEYWORDS
    mail_from: str | None = None
