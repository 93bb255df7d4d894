"""reCAPTCHA siteverify API のクライアント。"""

from __future__ import annotations

import json
from typing import Any

import httpx

from contact_mailer.clients.http_client import create_sync_client

RECAPTCHA_VERIFY_ENDPOINT = "https://www.google.com/recaptcha/api/siteverify"


class RecaptchaApiError(RuntimeError):
    """siteverify の呼び出し失敗を表す例外。"""

    def __init__(self, message: str, *, reason: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.reason = reason
        self.status_code = status_code


def verify_token(
    *,
    secret: str,
    response_token: str,
    remote_ip: str | None = None,
    endpoint: str = RECAPTCHA_VERIFY_ENDPOINT,
    timeout: httpx.Timeout | None = None,
    transport: httpx.BaseTransport | None = None,
) -> dict[str, Any]:
    """トークンを検証し、レスポンス JSON をそのまま返す。"""

    form = {"secret": secret, "response": response_token}
    if remote_ip:
        form["remoteip"] = remote_ip

    try:
        with create_sync_client(timeout=timeout, transport=transport) as client:
            response = client.post(endpoint, data=form)
    except httpx.HTTPError as exc:
        raise RecaptchaApiError(
            f"siteverify への接続に失敗しました: {exc}", reason="transport_error"
        ) from exc

    if not 200 <= response.status_code < 300:
        raise RecaptchaApiError(
            f"siteverify 呼び出しが失敗しました (Status: {response.status_code})",
            reason="http_status",
            status_code=response.status_code,
        )

    try:
        body = response.json()
    except json.JSONDecodeError as exc:
        raise RecaptchaApiError(
            "siteverify のレスポンスが JSON ではありません。", reason="malformed_payload"
        ) from exc
    if not isinstance(body, dict) or not isinstance(body.get("success"), bool):
        raise RecaptchaApiError(
            "siteverify のレスポンスに success がありません。", reason="malformed_payload"
        )
    return body
