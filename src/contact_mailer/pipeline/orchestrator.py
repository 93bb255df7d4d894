"""
フォーム送信パイプライン - 中核の処理順序。

1. 入力検証 (全項目のエラーを集めてから中断)
2. スパム判定
3. レート制限
4. CSRF トークン照合
5. ボット判定 (有効な場合のみ)
6. 本文・ヘッダー生成
7. メール送信 (フォールバック付き)

どの段階の失敗も `Result(success=False)` として返し、例外は呼び出し元へ伝播させない。
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable

from contact_mailer.core.logging import JsonLogSink, LogSink
from contact_mailer.pipeline.bot_verifier import BotVerifier, DisabledBotVerifier
from contact_mailer.pipeline.config import PipelineConfig
from contact_mailer.pipeline.dispatcher import DELIVERY_FAILED_MESSAGE, MailDispatcher
from contact_mailer.pipeline.errors import (
    AbuseRejected,
    SubmissionCancelled,
    SubmissionFailure,
    ValidationFailure,
)
from contact_mailer.pipeline.models import ContentType, FieldError, Result, SubmissionRequest
from contact_mailer.pipeline.rate_limiter import RateLimiter
from contact_mailer.pipeline.renderer import ContentRenderer
from contact_mailer.pipeline.spam_filter import SpamFilter
from contact_mailer.pipeline.token_guard import TokenGuard
from contact_mailer.pipeline.validator import FormValidator

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = (
    "Thank you! Your message has been sent successfully. "
    "We will get back to you as soon as possible."
)
SPAM_MESSAGE = "Your message contains suspicious content. Please review and resubmit."
RATE_LIMIT_MESSAGE = "Too many submissions. Please try again later."
CSRF_MESSAGE = "Security token validation failed. Please reload the page and try again."
BOT_CHECK_MESSAGE = "Bot verification failed. Please try again."


class SubmissionPipeline:
    """
    検証・不正対策・本文生成・送信を固定順で実行する。

    インスタンスは同時に複数のリクエストから共有される。可変の共有状態は
    レート制限のストアだけで、その整合性は `RateLimiter` が保証する。
    """

    def __init__(
        self,
        config: PipelineConfig,
        *,
        validator: FormValidator,
        spam_filter: SpamFilter,
        rate_limiter: RateLimiter,
        token_guard: TokenGuard,
        renderer: ContentRenderer,
        dispatcher: MailDispatcher,
        bot_verifier: BotVerifier | None = None,
        log_sink: LogSink | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._config = config
        self._validator = validator
        self._spam_filter = spam_filter
        self._rate_limiter = rate_limiter
        self._token_guard = token_guard
        self._renderer = renderer
        self._dispatcher = dispatcher
        self._bot_verifier = bot_verifier or DisabledBotVerifier()
        self._log_sink = log_sink or JsonLogSink()
        self._clock = clock

    @property
    def config(self) -> PipelineConfig:
        return self._config

    @property
    def token_guard(self) -> TokenGuard:
        return self._token_guard

    def process(
        self,
        request: SubmissionRequest,
        *,
        cancelled: threading.Event | None = None,
    ) -> Result:
        """
        1 件の送信を最後まで処理する。

        Args:
            request: フォーム送信内容
            cancelled: 呼び出し元が離脱したときにセットされるイベント

        Returns:
            Result: 成功時は success=True。失敗時は最初に検出した理由
            (入力エラーは全件) を含む。
        """
        identity = request.client_identity
        try:
            self._run(request, cancelled)
        except SubmissionFailure as exc:
            level = "WARNING" if exc.category in ("validation", "abuse", "cancelled") else "ERROR"
            self._log(level, identity, f"{exc.category} failure at {exc.stage}: {exc.detail}")
            return Result(
                success=False,
                message=exc.public_message,
                errors=tuple(exc.errors),
                category=exc.category,
            )
        except Exception as exc:
            logger.exception("unexpected failure while processing submission")
            self._log("ERROR", identity, f"unexpected failure: {exc!r}")
            return Result(
                success=False,
                message=DELIVERY_FAILED_MESSAGE,
                errors=(FieldError("delivery", DELIVERY_FAILED_MESSAGE),),
                category="delivery",
            )

        self._log("INFO", identity, f"message sent to {request.recipient}")
        return Result(success=True, message=SUCCESS_MESSAGE)

    def _run(self, request: SubmissionRequest, cancelled: threading.Event | None) -> None:
        identity = request.client_identity

        self._validator.check_structure(
            recipient=request.recipient,
            transport=self._dispatcher if self._dispatcher.has_transport else None,
        )

        errors = self._validator.validate(request)
        if errors:
            if len(errors) == 1:
                summary = errors[0].message
            else:
                summary = "Please correct the following: " + " ".join(e.message for e in errors)
            raise ValidationFailure(summary, errors=errors, stage="validation")
        self._checkpoint(cancelled, "validation")

        verdict = self._spam_filter.scan(request.message)
        if not verdict.clean:
            raise ValidationFailure(SPAM_MESSAGE, detail=f"spam: {verdict.reason}", stage="message")
        self._checkpoint(cancelled, "spam_filter")

        if not self._rate_limiter.check(identity):
            raise AbuseRejected(
                RATE_LIMIT_MESSAGE,
                detail=(
                    f"rate limit exceeded ({self._config.rate_limit.max_requests} per "
                    f"{self._config.rate_limit.window_seconds}s)"
                ),
                stage="rate_limit",
            )
        self._checkpoint(cancelled, "rate_limit")

        if self._config.csrf_enabled:
            stored = self._token_guard.stored_token(request.session_id)
            if not self._token_guard.verify(request.csrf_token, stored):
                reason = "token mismatch" if stored else "no stored token"
                raise AbuseRejected(CSRF_MESSAGE, detail=f"csrf: {reason}", stage="csrf")
            self._checkpoint(cancelled, "csrf")

        if self._bot_verifier.enabled:
            check = self._bot_verifier.verify(
                request.bot_token, request.client_address or None
            )
            if not check.passed:
                raise AbuseRejected(
                    BOT_CHECK_MESSAGE,
                    detail=f"bot check: {check.reason} score={check.score}",
                    stage="bot_check",
                )
            self._checkpoint(cancelled, "bot_check")

        mode = ContentType.HTML if self._config.html else ContentType.PLAIN_TEXT
        rendered = self._renderer.render(request, mode)
        self._checkpoint(cancelled, "render")

        self._dispatcher.send(rendered, cancelled=cancelled)

    def _checkpoint(self, cancelled: threading.Event | None, stage: str) -> None:
        if cancelled is not None and cancelled.is_set():
            raise SubmissionCancelled(
                "The request was cancelled.",
                detail=f"cancelled after {stage}",
                stage="cancelled",
            )

    def _log(self, level: str, identity: str, message: str) -> None:
        try:
            self._log_sink.append(self._clock(), level, identity, message)
        except Exception:
            logger.exception("failed to write submission log")
