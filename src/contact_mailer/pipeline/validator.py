"""入力項目の検証。"""

from __future__ import annotations

from email_validator import EmailNotValidError, validate_email

from contact_mailer.pipeline.config import FormLimits
from contact_mailer.pipeline.errors import ConfigurationFailure
from contact_mailer.pipeline.models import FieldError, SubmissionRequest


def is_valid_email(address: str | None) -> bool:
    """DNS 照会なしで RFC 5322 相当の書式だけを確認する。"""

    if not address:
        return False
    try:
        validate_email(address, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


class FormValidator:
    """入力項目のエラーを 1 パスですべて集める。"""

    def __init__(self, limits: FormLimits | None = None) -> None:
        self._limits = limits or FormLimits()

    def check_structure(self, *, recipient: str | None, transport: object | None) -> None:
        """構造的な不備は即座に中断する。"""

        if transport is None:
            raise ConfigurationFailure(
                "The contact form is temporarily unavailable.",
                detail="mail transport is not configured",
                stage="configuration",
            )
        if not recipient:
            raise ConfigurationFailure(
                "The contact form is temporarily unavailable.",
                detail="recipient email address is not configured",
                stage="configuration",
            )
        if not is_valid_email(recipient):
            raise ConfigurationFailure(
                "The contact form is temporarily unavailable.",
                detail=f"recipient email address is invalid: {recipient!r}",
                stage="configuration",
            )

    def validate(self, request: SubmissionRequest) -> list[FieldError]:
        errors: list[FieldError] = []
        flagged: set[str] = set()

        def add(source: str, message: str) -> None:
            errors.append(FieldError(source, message))
            flagged.add(source.lower())

        limits = self._limits
        core_fields = (
            ("name", "Name", request.name, limits.name_min, limits.name_max),
            ("email", "Email", request.email, None, None),
            ("subject", "Subject", request.subject, limits.subject_min, limits.subject_max),
            ("message", "Message", request.message, limits.message_min, limits.message_max),
        )
        for key, label, raw, low, high in core_fields:
            value = (raw or "").strip()
            if not value:
                add(key, f"{label} field is required.")
                continue
            if low is not None and len(value) < low:
                add(key, f"{label} must be at least {low} characters long.")
            elif high is not None and len(value) > high:
                add(key, f"{label} must not exceed {high} characters.")

        if "email" not in flagged and not is_valid_email(request.email.strip()):
            add("email", "Please provide a valid email address.")

        for form_field in request.fields:
            key = form_field.label.lower()
            if key in flagged:
                continue
            value = form_field.value.strip()
            if not value:
                add(form_field.label, f"{form_field.label} field is required.")
            elif form_field.min_length > 0 and len(value) < form_field.min_length:
                add(
                    form_field.label,
                    f"{form_field.label} must be at least {form_field.min_length} characters long.",
                )

        return errors
