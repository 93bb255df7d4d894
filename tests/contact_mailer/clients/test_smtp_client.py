"""SMTP リレー送信のテスト。"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from contact_mailer.clients import smtp_client
from contact_mailer.pipeline.config import SmtpConfig
from contact_mailer.pipeline.transports import SmtpRemoteTransport

HEADERS = ["From: Jane Doe <jane@example.com>", "Content-Type: text/plain; charset=UTF-8"]


def _send(secure: str) -> None:
    smtp_client.send_raw_message(
        host="smtp.example.com",
        port=587,
        username="user",
        password="secret",
        secure=secure,
        sender="noreply@example.com",
        recipient="owner@example.com",
        raw_message=b"raw",
    )


@patch("contact_mailer.clients.smtp_client.smtplib.SMTP")
def test_tlsはSTARTTLSしてからログインする(mock_smtp: MagicMock) -> None:
    session = mock_smtp.return_value.__enter__.return_value

    _send("tls")

    mock_smtp.assert_called_once_with("smtp.example.com", 587, timeout=20)
    session.starttls.assert_called_once()
    session.login.assert_called_once_with("user", "secret")
    session.sendmail.assert_called_once_with(
        "noreply@example.com", ["owner@example.com"], b"raw"
    )


@patch("contact_mailer.clients.smtp_client.smtplib.SMTP_SSL")
def test_sslは暗号化接続を使う(mock_smtp_ssl: MagicMock) -> None:
    session = mock_smtp_ssl.return_value.__enter__.return_value

    _send("ssl")

    assert mock_smtp_ssl.call_args.args == ("smtp.example.com", 587)
    session.login.assert_called_once_with("user", "secret")
    session.sendmail.assert_called_once()


@patch("contact_mailer.clients.smtp_client.smtplib.SMTP")
def test_noneはSTARTTLSしない(mock_smtp: MagicMock) -> None:
    session = mock_smtp.return_value.__enter__.return_value

    _send("none")

    session.starttls.assert_not_called()
    session.sendmail.assert_called_once()


@patch("contact_mailer.pipeline.transports.smtp_client.send_raw_message")
def test_リレー経路はMAIL_FROMを送信者に使う(mock_send: MagicMock) -> None:
    config = SmtpConfig(host="smtp.example.com", port=465, username="user", password="pw", secure="ssl")

    sent = SmtpRemoteTransport(mail_from="noreply@example.com").send_via_remote(
        config, "owner@example.com", "Hello", "body", HEADERS
    )

    assert sent is True
    kwargs = mock_send.call_args.kwargs
    assert kwargs["sender"] == "noreply@example.com"
    assert kwargs["recipient"] == "owner@example.com"
    assert kwargs["port"] == 465
    assert kwargs["secure"] == "ssl"
    assert b"Subject: Hello" in kwargs["raw_message"]


@patch("contact_mailer.pipeline.transports.smtp_client.send_raw_message")
def test_リレー経路はMAIL_FROMが無ければユーザー名を使う(mock_send: MagicMock) -> None:
    config = SmtpConfig(host="smtp.example.com", username="relay@example.com", password="pw")

    SmtpRemoteTransport().send_via_remote(config, "owner@example.com", "Hello", "body", HEADERS)

    assert mock_send.call_args.kwargs["sender"] == "relay@example.com"


def test_ホスト未設定は例外() -> None:
    with pytest.raises(ValueError):
        SmtpRemoteTransport().send_via_remote(SmtpConfig(), "owner@example.com", "s", "b", HEADERS)
