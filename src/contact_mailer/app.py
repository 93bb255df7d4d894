"""FastAPI アプリケーションの組み立てを担当するモジュール。"""

from __future__ import annotations

from fastapi import FastAPI

from .core.middleware import request_id_middleware
from .core.settings import load_settings
from .features.contact_submit.router_contact_submit import router as contact_router
from .features.contact_submit.usecase_contact_submit import build_pipeline
from .pipeline.stores import InMemoryStore


def create_app() -> FastAPI:
    """設定・パイプライン・共通ミドルウェアを組み込んだ FastAPI アプリを返す。"""

    settings = load_settings()
    store = InMemoryStore()
    pipeline = build_pipeline(settings, store)

    app = FastAPI(title="contact-mailer", version="0.1.0")
    app.state.settings = settings  # type: ignore[attr-defined]
    app.state.store = store  # type: ignore[attr-defined]
    app.state.pipeline = pipeline  # type: ignore[attr-defined]
    app.middleware("http")(request_id_middleware)

    @app.get("/healthz", tags=["health"])
    def healthz() -> dict[str, str]:
        return {"status": "ok", "env": settings.app_env}

    app.include_router(contact_router)

    return app
