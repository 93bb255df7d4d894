"""クライアント単位のスライディングウィンドウ・レート制限。"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from contact_mailer.pipeline.config import RateLimitConfig
from contact_mailer.pipeline.stores import KeyValueStore

logger = logging.getLogger(__name__)

_KEY_PREFIX = "rate_limit:"
LOCK_STRIPES = 64


class RateLimiter:
    """
    直近 `window_seconds` 秒の受付時刻を数えて可否を決める。

    古い時刻は `check` のたびに取り除く。同一キーの読み出しから書き戻しまでは、
    キーのハッシュで選ぶ固定数のロックで直列化する。ウィンドウ 1 つ分の時間が
    経つごとに、最後の受付から窓を過ぎたクライアントのキーをストアから消す。
    """

    def __init__(
        self,
        store: KeyValueStore,
        config: RateLimitConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._config = config or RateLimitConfig()
        self._clock = clock
        self._locks = tuple(threading.Lock() for _ in range(LOCK_STRIPES))
        # キー -> 最後に受け付けた時刻
        self._last_seen: dict[str, float] = {}
        self._seen_guard = threading.Lock()
        self._sweep_guard = threading.Lock()
        self._last_sweep: float | None = None

    @property
    def tracked_identities(self) -> int:
        with self._seen_guard:
            return len(self._last_seen)

    def _lock_for(self, key: str) -> threading.Lock:
        return self._locks[hash(key) % LOCK_STRIPES]

    def check(self, identity: str) -> bool:
        key = f"{_KEY_PREFIX}{identity}"
        window = self._config.window_seconds
        with self._lock_for(key):
            now = self._clock()
            stored = self._store.get(key) or []
            live = [ts for ts in stored if (now - ts) < window]
            if len(live) >= self._config.max_requests:
                # 拒否時は時刻を追加しないが、掃除した結果は書き戻す
                self._store.set(key, live)
                logger.info(
                    "rate limit exceeded: identity=%s count=%d window=%ds",
                    identity,
                    len(live),
                    window,
                )
                allowed = False
            else:
                live.append(now)
                self._store.set(key, live)
                with self._seen_guard:
                    self._last_seen[key] = now
                allowed = True

        self._maybe_sweep(now)
        return allowed

    def _maybe_sweep(self, now: float) -> None:
        if self._last_sweep is None:
            self._last_sweep = now
            return
        if now - self._last_sweep < self._config.window_seconds:
            return
        # 他スレッドが掃除中なら任せる
        if not self._sweep_guard.acquire(blocking=False):
            return
        try:
            self._last_sweep = now
            self.sweep(now)
        finally:
            self._sweep_guard.release()

    def sweep(self, now: float | None = None) -> int:
        """窓の外に出たクライアントのキーを消し、消した件数を返す。"""

        now = self._clock() if now is None else now
        window = self._config.window_seconds
        with self._seen_guard:
            stale = [key for key, seen in self._last_seen.items() if now - seen >= window]

        removed = 0
        for key in stale:
            with self._lock_for(key):
                stored = self._store.get(key) or []
                if any((now - ts) < window for ts in stored):
                    continue
                self._store.delete(key)
                with self._seen_guard:
                    seen = self._last_seen.get(key)
                    if seen is not None and now - seen >= window:
                        del self._last_seen[key]
                removed += 1
        if removed:
            logger.debug("rate limit sweep removed %d idle identities", removed)
        return removed
