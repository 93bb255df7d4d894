"""リクエスト ID・セキュリティヘッダー・例外変換ミドルウェアのテスト。"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from contact_mailer.core.middleware import SECURITY_HEADERS, request_id_middleware


def _build_app() -> FastAPI:
    app = FastAPI()
    app.middleware("http")(request_id_middleware)

    @app.get("/ok")
    def ok() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/boom")
    def boom() -> dict[str, str]:
        raise RuntimeError("secret internals")

    return app


def test_リクエストIDを引き継ぐ() -> None:
    client = TestClient(_build_app())

    response = client.get("/ok", headers={"X-Request-Id": "req-123"})

    assert response.status_code == 200
    assert response.headers["X-Request-Id"] == "req-123"
    assert int(response.headers["X-Response-Time-Ms"]) >= 0


def test_リクエストIDが無ければ生成する() -> None:
    response = TestClient(_build_app()).get("/ok")

    assert len(response.headers["X-Request-Id"]) == 36


def test_セキュリティヘッダーを付与する() -> None:
    response = TestClient(_build_app()).get("/ok")

    for name, value in SECURITY_HEADERS.items():
        assert response.headers[name] == value


def test_未処理の例外はJSONの500に変換する() -> None:
    response = TestClient(_build_app()).get("/boom")

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Internal server error."}
    assert "secret internals" not in response.text
    assert "X-Request-Id" in response.headers
