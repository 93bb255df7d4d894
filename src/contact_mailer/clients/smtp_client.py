"""SMTP リレーへの送信ヘルパー。"""

from __future__ import annotations

import smtplib
import ssl

SMTP_TIMEOUT_SECONDS = 20


def send_raw_message(
    *,
    host: str,
    port: int,
    username: str | None,
    password: str | None,
    secure: str,
    sender: str,
    recipient: str,
    raw_message: bytes,
    timeout: float = SMTP_TIMEOUT_SECONDS,
) -> None:
    """`secure` は "ssl" / "tls" (STARTTLS) / "none" のいずれか。"""

    context = ssl.create_default_context()
    if secure == "ssl":
        with smtplib.SMTP_SSL(host, port, timeout=timeout, context=context) as smtp:
            _login_and_send(smtp, username, password, sender, recipient, raw_message)
        return

    with smtplib.SMTP(host, port, timeout=timeout) as smtp:
        smtp.ehlo()
        if secure == "tls":
            smtp.starttls(context=context)
            smtp.ehlo()
        _login_and_send(smtp, username, password, sender, recipient, raw_message)


def _login_and_send(
    smtp: smtplib.SMTP,
    username: str | None,
    password: str | None,
    sender: str,
    recipient: str,
    raw_message: bytes,
) -> None:
    if username and password:
        smtp.login(username, password)
    smtp.sendmail(sender, [recipient], raw_message)
