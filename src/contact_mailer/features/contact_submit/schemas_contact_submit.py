"""`/contact` のリクエスト/レスポンススキーマ。"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ContactSubmitRequest(BaseModel):
    """フォームの入力値。必須チェックと文字数はパイプライン側で検証する。"""

    name: str = ""
    email: str = ""
    subject: str = ""
    message: str = ""
    csrf_token: str | None = None
    recaptcha_response: str | None = Field(default=None, alias="g-recaptcha-response")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ErrorItem(BaseModel):
    field: str
    message: str


class ContactSubmitResponse(BaseModel):
    success: bool
    message: str
    errors: list[ErrorItem] = Field(default_factory=list)


class CsrfTokenResponse(BaseModel):
    csrf_token: str
