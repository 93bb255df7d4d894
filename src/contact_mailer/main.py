"""Lambda と uvicorn から起動するエントリポイント。"""

from __future__ import annotations

import os
from typing import Any

import uvicorn
from mangum import Mangum

from .app import create_app
from .core.logging import configure_logging

configure_logging(os.getenv("LOG_LEVEL", "INFO"))

app = create_app()
# startup/shutdown で行う処理は無い
_handler = Mangum(app, lifespan="off")


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """API Gateway (HTTP API / REST API) と Function URL のイベントを受ける。"""
    return _handler(event, context)


def run_local() -> None:
    """`contact-mailer-api` で起動する開発用サーバー。"""
    uvicorn.run(
        "contact_mailer.main:app",
        host=os.getenv("APP_HOST", "127.0.0.1"),
        port=int(os.getenv("APP_PORT", "8000")),
        reload=os.getenv("APP_RELOAD", "1") == "1",
    )


if os.getenv("RUN_LOCAL") == "1":
    run_local()
