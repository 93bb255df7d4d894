"""既定経路へのフォールバック付きメール送信。"""

from __future__ import annotations

import logging
import threading

from contact_mailer.pipeline.config import SmtpConfig
from contact_mailer.pipeline.errors import (
    ConfigurationFailure,
    DeliveryFailure,
    SubmissionCancelled,
)
from contact_mailer.pipeline.models import RenderedMessage
from contact_mailer.pipeline.transports import MailTransport, RemoteTransport

logger = logging.getLogger(__name__)

DELIVERY_FAILED_MESSAGE = "Failed to send your message. Please try again later."


class MailDispatcher:
    """
    1 通のメールを送る。再送はしない。

    SMTP 設定が完全にそろっていればリレーを先に試し、失敗したとき、または設定が無い・
    不完全なときは既定経路で送る。既定経路の失敗は `DeliveryFailure` として確定する。
    """

    def __init__(
        self,
        default_transport: MailTransport | None,
        *,
        remote_transport: RemoteTransport | None = None,
        remote_config: SmtpConfig | None = None,
    ) -> None:
        self._default = default_transport
        self._remote = remote_transport
        self._remote_config = remote_config or SmtpConfig()

    @property
    def has_transport(self) -> bool:
        return self._default is not None

    def send(self, message: RenderedMessage, cancelled: threading.Event | None = None) -> bool:
        if self._default is None:
            raise ConfigurationFailure(
                "The contact form is temporarily unavailable.",
                detail="default mail transport is missing",
                stage="delivery",
            )

        config = self._remote_config
        if self._remote is not None and config.is_complete:
            self._raise_if_cancelled(cancelled)
            if self._try_remote(self._remote, config, message):
                return True
            logger.warning("SMTP relay failed, falling back to default transport")
        elif config.is_configured:
            logger.warning(
                "SMTP relay configuration is incomplete (host/username/password), "
                "using default transport"
            )

        self._raise_if_cancelled(cancelled)
        try:
            sent = self._default.send_message(
                message.to, message.subject, message.body, list(message.headers)
            )
        except Exception as exc:
            raise DeliveryFailure(
                DELIVERY_FAILED_MESSAGE,
                detail=f"default transport raised: {exc!r}",
                stage="delivery",
            ) from exc
        if not sent:
            raise DeliveryFailure(
                DELIVERY_FAILED_MESSAGE,
                detail="default transport reported failure",
                stage="delivery",
            )
        return True

    def _try_remote(
        self, remote: RemoteTransport, config: SmtpConfig, message: RenderedMessage
    ) -> bool:
        try:
            return bool(
                remote.send_via_remote(
                    config, message.to, message.subject, message.body, list(message.headers)
                )
            )
        except Exception:
            logger.exception("SMTP relay raised an error")
            return False

    def _raise_if_cancelled(self, cancelled: threading.Event | None) -> None:
        if cancelled is not None and cancelled.is_set():
            raise SubmissionCancelled(
                "The request was cancelled before the message was sent.",
                detail="cancelled before transport attempt",
                stage="delivery",
            )
