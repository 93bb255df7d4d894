"""メール送信経路の実装。

既定経路は Amazon SES、任意経路は SMTP リレー。どちらも送信できなければ False を返すか
例外を送出し、フォールバックの判断は `MailDispatcher` が行う。
"""

from __future__ import annotations

import logging
from email.message import EmailMessage
from email.policy import SMTP
from email.utils import parseaddr
from typing import Protocol, Sequence

from botocore.exceptions import BotoCoreError, ClientError

from contact_mailer.clients import ses_client, smtp_client
from contact_mailer.pipeline.config import SmtpConfig

logger = logging.getLogger(__name__)

_BODY_HEADERS = {"content-type", "mime-version", "content-transfer-encoding"}


class MailTransport(Protocol):
    def send_message(self, to: str, subject: str, body: str, headers: Sequence[str]) -> bool: ...


class RemoteTransport(Protocol):
    def send_via_remote(
        self,
        config: SmtpConfig,
        to: str,
        subject: str,
        body: str,
        headers: Sequence[str],
    ) -> bool: ...


def build_mime_message(to: str, subject: str, body: str, headers: Sequence[str]) -> EmailMessage:
    """ヘッダー行の列と本文から MIME メッセージを組み立てる。"""

    message = EmailMessage()
    subtype = "plain"
    charset = "utf-8"
    for line in headers:
        name, _, value = line.partition(":")
        name, value = name.strip(), value.strip()
        if not name:
            continue
        if name.lower() == "content-type":
            if value.lower().startswith("text/html"):
                subtype = "html"
            if "charset=" in value.lower():
                charset = value.lower().split("charset=", 1)[1].strip() or charset
            continue
        if name.lower() in _BODY_HEADERS:
            continue
        message[name] = value
    message["To"] = to
    message["Subject"] = subject
    message.set_content(body, subtype=subtype, charset=charset)
    return message


def envelope_sender(headers: Sequence[str]) -> str:
    for line in headers:
        name, _, value = line.partition(":")
        if name.strip().lower() == "from":
            return parseaddr(value.strip())[1]
    return ""


class SesTransport:
    """既定の送信経路。"""

    def __init__(self, *, region: str, source: str | None = None) -> None:
        self._region = region
        self._source = source

    def send_message(self, to: str, subject: str, body: str, headers: Sequence[str]) -> bool:
        message = build_mime_message(to, subject, body, headers)
        try:
            response = ses_client.send_raw_email(
                region=self._region,
                destination=to,
                raw_message=message.as_bytes(policy=SMTP),
                source=self._source,
            )
        except (ClientError, BotoCoreError) as exc:
            logger.error("SES send_raw_email failed: %s", exc)
            return False
        logger.info("SES accepted message: message_id=%s", response.get("MessageId"))
        return True


class SmtpRemoteTransport:
    """設定がそろっている場合にだけ使う SMTP リレー。"""

    def __init__(self, *, mail_from: str | None = None) -> None:
        self._mail_from = mail_from

    def send_via_remote(
        self,
        config: SmtpConfig,
        to: str,
        subject: str,
        body: str,
        headers: Sequence[str],
    ) -> bool:
        if not config.host:
            raise ValueError("SMTP_HOST が未設定です。")
        message = build_mime_message(to, subject, body, headers)
        sender = self._mail_from or config.username or envelope_sender(headers)
        smtp_client.send_raw_message(
            host=config.host,
            port=config.port,
            username=config.username,
            password=config.password,
            secure=config.secure,
            sender=sender,
            recipient=to,
            raw_message=message.as_bytes(policy=SMTP),
        )
        return True
