"""httpx クライアントの共通設定。"""

from __future__ import annotations

import httpx

DEFAULT_TIMEOUT = httpx.Timeout(10.0, connect=5.0)
USER_AGENT = "contact-mailer/0.1.0"


def create_sync_client(
    *,
    timeout: httpx.Timeout | None = None,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """共通タイムアウトと User-Agent 付きの同期 Client を生成する。

    `transport` はテストで `httpx.MockTransport` を差し込むために使う。
    """

    return httpx.Client(
        timeout=timeout or DEFAULT_TIMEOUT,
        headers={"User-Agent": USER_AGENT},
        transport=transport,
    )
