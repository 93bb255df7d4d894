"""
フォーム送信の処理パイプライン。

FastAPI には依存しない。ストア・送信経路・ログの書き込み先・ボット判定は
すべて外部から注入する。
"""

from __future__ import annotations

from .config import PipelineConfig
from .models import FieldError, FormField, RenderedMessage, Result, SubmissionRequest
from .orchestrator import SubmissionPipeline

__all__ = [
    "FieldError",
    "FormField",
    "PipelineConfig",
    "RenderedMessage",
    "Result",
    "SubmissionPipeline",
    "SubmissionRequest",
]
