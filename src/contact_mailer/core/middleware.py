"""FastAPI 用の共通ミドルウェア群。"""

from __future__ import annotations

import time
import uuid
from typing import Awaitable, Callable

from fastapi import Request, Response
from starlette.responses import JSONResponse

from contact_mailer.core.logging import log_error, log_request


RequestHandler = Callable[[Request], Awaitable[Response]]

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


async def request_id_middleware(request: Request, call_next: RequestHandler) -> Response:
    """X-Request-Id を受理・生成しレスポンスヘッダへ付与する。

    ハンドラから漏れた例外は JSON の 500 応答に変換し、生のトレースは返さない。
    """

    request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
    request.state.request_id = request_id

    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as exc:
        latency_ms = int((time.perf_counter() - started) * 1000)
        log_error(
            path=request.url.path,
            status=500,
            request_id=request_id,
            latency_ms=latency_ms,
            error=exc,
        )
        response = JSONResponse(
            {"success": False, "message": "Internal server error."}, status_code=500
        )

    latency_ms = int((time.perf_counter() - started) * 1000)
    response.headers["X-Request-Id"] = request_id
    response.headers["X-Response-Time-Ms"] = str(latency_ms)
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    log_request(
        path=request.url.path,
        status=response.status_code,
        request_id=request_id,
        latency_ms=latency_ms,
    )
    return response
