"""パイプラインの各ステージが送出する例外。

利用者に見せる文言 (`public_message`) と、ログにだけ残す詳細 (`detail`) を分けて保持する。
"""

from __future__ import annotations

from contact_mailer.pipeline.models import ErrorCategory, FieldError


class SubmissionFailure(Exception):
    """送信処理を中断させる失敗の基底クラス。"""

    category: ErrorCategory = "delivery"

    def __init__(
        self,
        public_message: str,
        *,
        detail: str | None = None,
        errors: list[FieldError] | None = None,
        stage: str | None = None,
    ) -> None:
        super().__init__(detail or public_message)
        self.public_message = public_message
        self.detail = detail or public_message
        self.stage = stage
        self.errors = list(errors or [])
        if not self.errors and stage:
            self.errors.append(FieldError(stage, public_message))


class ValidationFailure(SubmissionFailure):
    """利用者が修正できる入力内容の不備。"""

    category: ErrorCategory = "validation"


class AbuseRejected(SubmissionFailure):
    """レート制限・CSRF・ボット判定による拒否。"""

    category: ErrorCategory = "abuse"


class DeliveryFailure(SubmissionFailure):
    """メール送信経路の失敗。"""

    category: ErrorCategory = "delivery"


class ConfigurationFailure(SubmissionFailure):
    """必須の協調オブジェクトや設定値の欠落。"""

    category: ErrorCategory = "configuration"


class SubmissionCancelled(SubmissionFailure):
    """呼び出し元が処理完了前に離脱した。"""

    category: ErrorCategory = "cancelled"
