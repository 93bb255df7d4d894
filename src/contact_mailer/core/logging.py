"""JSONロギングの共通ヘルパーと送信ログの書き込み先。"""

from __future__ import annotations

import json
import logging
import threading
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

_LOGGER = logging.getLogger("contact_mailer")


def configure_logging(level: str = "INFO") -> None:
    """`contact_mailer` 配下のロガーのレベルを設定する。

    ルートにハンドラーが無い環境 (uvicorn 直起動など) では、JSON をそのまま
    標準エラーへ出すハンドラーを 1 つだけ付ける。Lambda ではランタイムのハンドラーを使う。
    """

    _LOGGER.setLevel(level.upper())
    if logging.getLogger().handlers or _LOGGER.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    _LOGGER.addHandler(handler)


def log_request(*, path: str, status: int, request_id: str, latency_ms: int) -> None:
    payload = {
        "level": "INFO",
        "path": path,
        "status": status,
        "request_id": request_id,
        "latency_ms": latency_ms,
    }
    _LOGGER.info(json.dumps(payload, ensure_ascii=False))


def log_error(
    *,
    path: str,
    status: int,
    request_id: str,
    latency_ms: int,
    error: Any,
) -> None:
    payload = {
        "level": "ERROR",
        "path": path,
        "status": status,
        "request_id": request_id,
        "latency_ms": latency_ms,
        "error_json": _to_error_json(error),
        "traceback": traceback.format_exc(),
    }
    _LOGGER.error(json.dumps(payload, ensure_ascii=False))


def log_event(*, timestamp: datetime, level: str, client_identity: str, message: str) -> None:
    payload = {
        "level": level.upper(),
        "timestamp": timestamp.isoformat(),
        "client": client_identity,
        "message": message,
    }
    _LOGGER.log(_LEVELS.get(level.upper(), logging.INFO), json.dumps(payload, ensure_ascii=False))


def _to_error_json(error: Any) -> str:
    if isinstance(error, (dict, list)):
        return json.dumps(error, ensure_ascii=False)
    return json.dumps({"message": str(error)}, ensure_ascii=False)


_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


class LogSink(Protocol):
    """追記専用の送信ログ。失敗してもパイプラインは止めない。"""

    def append(self, timestamp: datetime, level: str, client_identity: str, message: str) -> None: ...


class JsonLogSink:
    """`contact_mailer` ロガーへ JSON 1 行で出力する。"""

    def append(self, timestamp: datetime, level: str, client_identity: str, message: str) -> None:
        log_event(
            timestamp=timestamp,
            level=level,
            client_identity=client_identity,
            message=message,
        )


class FileLogSink:
    """`[時刻] [レベル] [クライアント] メッセージ` の形式でファイルへ追記する。"""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    def append(self, timestamp: datetime, level: str, client_identity: str, message: str) -> None:
        line = (
            f"[{timestamp.strftime('%Y-%m-%d %H:%M:%S')}] "
            f"[{level.upper()}] [{client_identity}] {message}\n"
        )
        with self._lock:
            with self._path.open("a", encoding="utf-8") as file:
                file.write(line)
