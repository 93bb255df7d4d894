"""セッション単位の CSRF トークン発行と照合。"""

from __future__ import annotations

import hmac
import secrets

from contact_mailer.pipeline.stores import KeyValueStore

_KEY_PREFIX = "csrf:"
TOKEN_BYTES = 32


class TokenGuard:
    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def issue(self, session_id: str) -> str:
        """セッションにトークンが無ければ 256 bit の乱数で発行する。"""

        key = f"{_KEY_PREFIX}{session_id}"
        token = self._store.get(key)
        if token:
            return str(token)
        token = secrets.token_hex(TOKEN_BYTES)
        self._store.set(key, token)
        return token

    def stored_token(self, session_id: str | None) -> str | None:
        if not session_id:
            return None
        token = self._store.get(f"{_KEY_PREFIX}{session_id}")
        return str(token) if token else None

    @staticmethod
    def verify(presented: str | None, stored: str | None) -> bool:
        """どちらかが欠けていれば常に失敗とする。"""

        if not presented or not stored:
            return False
        return hmac.compare_digest(presented.encode("utf-8"), stored.encode("utf-8"))

    def verify_session(self, session_id: str | None, presented: str | None) -> bool:
        return self.verify(presented, self.stored_token(session_id))
