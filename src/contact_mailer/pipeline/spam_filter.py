"""キーワード拒否リストによる単純なスパム判定。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from contact_mailer.pipeline.config import DEFAULT_SPAM_KEYWORDS


@dataclass(frozen=True, slots=True)
class SpamVerdict:
    clean: bool
    reason: str | None = None


class SpamFilter:
    """大文字小文字を区別しない部分一致。学習や重み付けは行わない。"""

    def __init__(self, keywords: Iterable[str] = DEFAULT_SPAM_KEYWORDS) -> None:
        self._keywords = tuple(k.lower() for k in keywords if k.strip())

    def scan(self, text: str) -> SpamVerdict:
        lowered = (text or "").lower()
        for keyword in self._keywords:
            if keyword in lowered:
                return SpamVerdict(clean=False, reason=f"matched keyword {keyword!r}")
        return SpamVerdict(clean=True)
