"""外部スコアリングサービスによるボット判定。"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from contact_mailer.clients import recaptcha_client
from contact_mailer.clients.recaptcha_client import RecaptchaApiError
from contact_mailer.pipeline.config import BotCheckConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BotCheck:
    passed: bool
    score: float | None = None
    reason: str | None = None


class BotVerifier(Protocol):
    enabled: bool

    def verify(self, response_token: str | None, client_identity: str | None) -> BotCheck: ...


class DisabledBotVerifier:
    """シークレット未設定時に使う。パイプラインはこのステージを飛ばす。"""

    enabled = False

    def verify(self, response_token: str | None, client_identity: str | None) -> BotCheck:
        return BotCheck(passed=True, reason="disabled")


class RecaptchaVerifier:
    """
    reCAPTCHA siteverify でトークンを検証する。

    非 2xx 応答、通信エラー、不正な JSON、success=false、最低スコア未満は
    いずれも不合格とし、理由ごとに異なるログを残す。
    """

    enabled = True

    def __init__(
        self,
        config: BotCheckConfig,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not config.secret:
            raise ValueError("RECAPTCHA_SECRET が未設定です。")
        self._config = config
        self._transport = transport

    def verify(self, response_token: str | None, client_identity: str | None) -> BotCheck:
        if not response_token:
            logger.info("bot check failed: missing_token")
            return BotCheck(passed=False, reason="missing_token")

        try:
            body = recaptcha_client.verify_token(
                secret=self._config.secret or "",
                response_token=response_token,
                remote_ip=client_identity,
                endpoint=self._config.verify_url,
                timeout=httpx.Timeout(self._config.timeout_seconds),
                transport=self._transport,
            )
        except RecaptchaApiError as exc:
            logger.warning("bot check failed: %s (%s)", exc.reason, exc)
            return BotCheck(passed=False, reason=exc.reason)

        if not body["success"]:
            codes = body.get("error-codes") or []
            logger.info("bot check failed: rejected error_codes=%s", codes)
            return BotCheck(passed=False, reason="rejected")

        score = body.get("score")
        if score is None:
            return BotCheck(passed=True)
        try:
            score = float(score)
        except (TypeError, ValueError):
            logger.warning("bot check failed: malformed_payload score=%r", body.get("score"))
            return BotCheck(passed=False, reason="malformed_payload")

        if score < self._config.min_score:
            logger.info(
                "bot check failed: low_score score=%.2f min=%.2f", score, self._config.min_score
            )
            return BotCheck(passed=False, score=score, reason="low_score")
        return BotCheck(passed=True, score=score)


def build_bot_verifier(config: BotCheckConfig) -> BotVerifier:
    if config.enabled:
        return RecaptchaVerifier(config)
    return DisabledBotVerifier()
