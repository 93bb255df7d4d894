"""お問い合わせフォームのエンドポイント。"""

from __future__ import annotations

import asyncio
import secrets
import threading
from typing import Any

from fastapi import APIRouter, Request, Response
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError
from starlette.responses import JSONResponse

from contact_mailer.core.logging import log_error
from contact_mailer.features.contact_submit.schemas_contact_submit import (
    ContactSubmitRequest,
    ContactSubmitResponse,
    CsrfTokenResponse,
    ErrorItem,
)
from contact_mailer.features.contact_submit.usecase_contact_submit import (
    status_code_for,
    submit_contact_form,
)
from contact_mailer.pipeline import Result

router = APIRouter(prefix="/contact", tags=["contact"])

SESSION_COOKIE = "contact_session"
METHOD_NOT_ALLOWED_MESSAGE = "Invalid request method. POST required."
BAD_REQUEST_MESSAGE = "The request body could not be read."
INTERNAL_ERROR_MESSAGE = "Failed to send your message. Please try again later."
DISCONNECT_POLL_SECONDS = 0.5


def get_client_ip(request: Request, trusted_hops: int = 0) -> str | None:
    """接続元アドレスを返す。

    X-Forwarded-For は信頼するプロキシの段数 `trusted_hops` が 1 以上のときだけ参照し、
    右から `trusted_hops` 番目 (最も外側のプロキシが見た接続元) を採用する。Mangum 経由では接続元に API Gateway の sourceIp が入る。
    """

    peer = request.client.host if request.client else None
    if trusted_hops <= 0:
        return peer
    hops = [h.strip() for h in request.headers.get("X-Forwarded-For", "").split(",") if h.strip()]
    if len(hops) < trusted_hops:
        return peer
    return hops[-trusted_hops]


async def _read_form(request: Request) -> dict[str, Any]:
    content_type = request.headers.get("Content-Type", "")
    if content_type.startswith("application/json"):
        body = await request.json()
        if not isinstance(body, dict):
            raise ValueError("JSON オブジェクトである必要があります。")
        return body
    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}


async def _watch_disconnect(request: Request, cancelled: threading.Event) -> None:
    while not cancelled.is_set():
        if await request.is_disconnected():
            cancelled.set()
            return
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)


def _to_response(result: Result) -> JSONResponse:
    body = ContactSubmitResponse(
        success=result.success,
        message=result.message,
        errors=[ErrorItem(field=e.source, message=e.message) for e in result.errors],
    )
    return JSONResponse(body.model_dump(), status_code=status_code_for(result))


@router.get("/csrf-token", response_model=CsrfTokenResponse)
async def csrf_token(request: Request, response: Response) -> CsrfTokenResponse:
    """セッション Cookie を払い出し、そのセッションの CSRF トークンを返す。"""

    session_id = request.cookies.get(SESSION_COOKIE)
    if not session_id:
        session_id = secrets.token_urlsafe(32)
        response.set_cookie(
            SESSION_COOKIE,
            session_id,
            httponly=True,
            samesite="strict",
            secure=not request.app.state.settings.is_local,  # type: ignore[attr-defined]
        )
    token = request.app.state.pipeline.token_guard.issue(session_id)  # type: ignore[attr-defined]
    return CsrfTokenResponse(csrf_token=token)


@router.post("", response_model=ContactSubmitResponse)
async def contact_submit(request: Request) -> JSONResponse:
    try:
        raw = await _read_form(request)
        payload = ContactSubmitRequest.model_validate(raw)
    except (ValueError, ValidationError):
        return JSONResponse(
            {"success": False, "message": BAD_REQUEST_MESSAGE, "errors": []},
            status_code=400,
        )

    cancelled = threading.Event()
    watcher = asyncio.create_task(_watch_disconnect(request, cancelled))
    try:
        result = await run_in_threadpool(
            submit_contact_form,
            payload,
            pipeline=request.app.state.pipeline,  # type: ignore[attr-defined]
            config=request.app.state.pipeline.config,  # type: ignore[attr-defined]
            client_ip=get_client_ip(
                request, request.app.state.settings.trusted_proxy_hops  # type: ignore[attr-defined]
            ),
            session_id=request.cookies.get(SESSION_COOKIE),
            cancelled=cancelled,
        )
    except Exception as exc:
        log_error(
            path=request.url.path,
            status=500,
            request_id=getattr(request.state, "request_id", ""),
            latency_ms=0,
            error=exc,
        )
        return JSONResponse(
            {"success": False, "message": INTERNAL_ERROR_MESSAGE, "errors": []},
            status_code=500,
        )
    finally:
        cancelled.set()
        watcher.cancel()

    return _to_response(result)


@router.api_route("", methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def contact_method_not_allowed() -> JSONResponse:
    return JSONResponse(
        {"success": False, "message": METHOD_NOT_ALLOWED_MESSAGE},
        status_code=405,
        headers={"Allow": "POST"},
    )
