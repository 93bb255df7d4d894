"""送信パイプラインのステージ間で受け渡すデータモデル。"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

ErrorCategory = Literal["validation", "abuse", "delivery", "configuration", "cancelled"]


class ContentType(str, Enum):
    """通知メール本文の形式。"""

    PLAIN_TEXT = "text/plain"
    HTML = "text/html"


@dataclass(frozen=True, slots=True)
class FormField:
    """本文に並べるラベル付きの入力値。"""

    label: str
    value: str
    min_length: int = 0


@dataclass(frozen=True, slots=True)
class SubmissionRequest:
    """1 回のフォーム送信を表す不変の入力。"""

    fields: tuple[FormField, ...]
    name: str
    email: str
    subject: str
    message: str
    recipient: str
    client_identity: str
    csrf_token: str | None = None
    bot_token: str | None = None
    session_id: str | None = None
    client_address: str | None = None


@dataclass(frozen=True, slots=True)
class FieldError:
    """入力項目またはステージ単位のエラー。"""

    source: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.source, "message": self.message}


@dataclass(frozen=True, slots=True)
class RenderedMessage:
    """送信直前の完成したメール。"""

    to: str
    subject: str
    headers: tuple[str, ...]
    body: str
    content_type: ContentType


@dataclass(frozen=True, slots=True)
class Result:
    """パイプラインの唯一の出力。"""

    success: bool
    message: str
    errors: tuple[FieldError, ...] = field(default_factory=tuple)
    category: ErrorCategory | None = None

    def __repr__(self) -> str:
        if self.success:
            return "Result(success=True)"
        return f"Result(success=False, category={self.category}, errors={len(self.errors)})"
