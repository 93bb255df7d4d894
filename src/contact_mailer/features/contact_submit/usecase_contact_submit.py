"""お問い合わせフォーム送信ユースケース。"""

from __future__ import annotations

import hashlib
import threading

from contact_mailer.core.logging import FileLogSink, JsonLogSink, LogSink
from contact_mailer.core.settings import Settings
from contact_mailer.features.contact_submit.schemas_contact_submit import ContactSubmitRequest
from contact_mailer.pipeline import (
    FormField,
    PipelineConfig,
    Result,
    SubmissionPipeline,
    SubmissionRequest,
)
from contact_mailer.pipeline.bot_verifier import build_bot_verifier
from contact_mailer.pipeline.config import FormLimits
from contact_mailer.pipeline.dispatcher import MailDispatcher
from contact_mailer.pipeline.rate_limiter import RateLimiter
from contact_mailer.pipeline.renderer import ContentRenderer
from contact_mailer.pipeline.spam_filter import SpamFilter
from contact_mailer.pipeline.stores import KeyValueStore
from contact_mailer.pipeline.token_guard import TokenGuard
from contact_mailer.pipeline.transports import SesTransport, SmtpRemoteTransport
from contact_mailer.pipeline.validator import FormValidator

# 本文に並べる項目 (キー, ラベル)
FIELD_LAYOUT: tuple[tuple[str, str], ...] = (
    ("name", "Name"),
    ("email", "Email"),
    ("subject", "Subject"),
    ("message", "Message"),
)
EMAIL_MIN_LENGTH = 5

STATUS_BY_CATEGORY = {
    "validation": 400,
    "abuse": 403,
    "delivery": 500,
    "configuration": 500,
    "cancelled": 503,
}


def hash_client_ip(client_ip: str | None) -> str:
    """レート制限キーに使うため、生の IP アドレスはハッシュ化して扱う。"""

    return hashlib.sha256((client_ip or "unknown").encode("utf-8")).hexdigest()


def field_minimums(limits: FormLimits) -> dict[str, int]:
    """各項目の最低文字数。メール以外はデプロイごとの設定に従う。"""

    return {
        "name": limits.name_min,
        "email": EMAIL_MIN_LENGTH,
        "subject": limits.subject_min,
        "message": limits.message_min,
    }


def build_pipeline(settings: Settings, store: KeyValueStore) -> SubmissionPipeline:
    """Settings から協調オブジェクトを組み立てる。"""

    config = settings.to_pipeline_config()
    log_sink: LogSink = FileLogSink(settings.log_file) if settings.log_file else JsonLogSink()
    dispatcher = MailDispatcher(
        SesTransport(region=settings.region, source=settings.mail_from),
        remote_transport=SmtpRemoteTransport(mail_from=settings.mail_from),
        remote_config=config.smtp,
    )
    return SubmissionPipeline(
        config,
        validator=FormValidator(config.limits),
        spam_filter=SpamFilter(config.spam_keywords),
        rate_limiter=RateLimiter(store, config.rate_limit),
        token_guard=TokenGuard(store),
        renderer=ContentRenderer(),
        dispatcher=dispatcher,
        bot_verifier=build_bot_verifier(config.bot_check),
        log_sink=log_sink,
    )


def build_submission(
    payload: ContactSubmitRequest,
    *,
    config: PipelineConfig,
    client_ip: str | None,
    session_id: str | None,
) -> SubmissionRequest:
    values = payload.model_dump(include={key for key, _ in FIELD_LAYOUT})
    minimums = field_minimums(config.limits)
    fields = tuple(
        FormField(label=label, value=values[key] or "", min_length=minimums[key])
        for key, label in FIELD_LAYOUT
    )
    return SubmissionRequest(
        fields=fields,
        name=payload.name.strip(),
        email=payload.email.strip(),
        subject=payload.subject.strip(),
        message=payload.message.strip(),
        recipient=config.recipient,
        client_identity=hash_client_ip(client_ip),
        csrf_token=payload.csrf_token,
        bot_token=payload.recaptcha_response,
        session_id=session_id,
        client_address=client_ip,
    )


def submit_contact_form(
    payload: ContactSubmitRequest,
    *,
    pipeline: SubmissionPipeline,
    config: PipelineConfig,
    client_ip: str | None,
    session_id: str | None,
    cancelled: threading.Event | None = None,
) -> Result:
    """フォーム内容をパイプラインへ渡し、結果をそのまま返す。"""

    submission = build_submission(
        payload, config=config, client_ip=client_ip, session_id=session_id
    )
    return pipeline.process(submission, cancelled=cancelled)


def status_code_for(result: Result) -> int:
    if result.success:
        return 200
    if result.category == "abuse" and any(e.source == "rate_limit" for e in result.errors):
        return 429
    return STATUS_BY_CATEGORY.get(result.category or "delivery", 500)
