"""レート制限と CSRF トークンの保存先。"""

from __future__ import annotations

import threading
from typing import Any, Protocol


class KeyValueStore(Protocol):
    """呼び出し側で差し替え可能なキーバリューストア。"""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryStore:
    """プロセス内の辞書で保持するストア。永続化はしない。"""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            value = self._data.get(key)
        if isinstance(value, list):
            return list(value)
        return value

    def set(self, key: str, value: Any) -> None:
        if isinstance(value, list):
            value = list(value)
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
