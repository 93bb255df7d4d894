"""通知メールのヘッダーと本文の組み立て。"""

from __future__ import annotations

import html
from datetime import datetime, timezone
from email.utils import formataddr
from typing import Callable, Sequence

from contact_mailer.pipeline.models import (
    ContentType,
    FormField,
    RenderedMessage,
    SubmissionRequest,
)

CHARSET = "UTF-8"
MAILER_NAME = "contact-mailer/0.1.0"
INTRO = "You have received a new message from your website contact form."
FOOTER_NOTE = "This email was sent from your website's contact form."

_HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head><meta charset="{charset}"></head>
<body style="font-family: Arial, Helvetica, sans-serif; color: #333333;">
<p>{intro}</p>
<table cellpadding="6" cellspacing="0" style="border-collapse: collapse;">
{rows}
</table>
<hr style="border: 0; border-top: 1px solid #dddddd;">
<p style="font-size: 12px; color: #888888;">{footer}</p>
</body>
</html>
"""

_HTML_ROW = (
    '<tr><th align="left" valign="top" style="padding-right: 12px;">{label}</th>'
    "<td>{value}</td></tr>"
)


def strip_line_breaks(value: str | None) -> str:
    """ヘッダー行に入る値から CR/LF を取り除く。"""

    return (value or "").replace("\r", "").replace("\n", "").strip()


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class ContentRenderer:
    def __init__(
        self,
        *,
        charset: str = CHARSET,
        mailer: str = MAILER_NAME,
        clock: Callable[[], datetime] = _now_utc,
    ) -> None:
        self._charset = charset
        self._mailer = mailer
        self._clock = clock

    def render_body(
        self,
        fields: Sequence[FormField],
        mode: ContentType,
        *,
        client_identity: str,
        sent_at: datetime | None = None,
    ) -> str:
        sent_at = sent_at or self._clock()
        footer_lines = [
            f"Sent at: {sent_at.strftime('%Y-%m-%d %H:%M:%S %Z').strip()}",
            f"Client: {client_identity}",
            FOOTER_NOTE,
        ]

        if mode is ContentType.HTML:
            rows = "\n".join(
                _HTML_ROW.format(
                    label=html.escape(f.label),
                    value=html.escape(f.value.strip()).replace("\n", "<br>\n"),
                )
                for f in fields
            )
            return _HTML_TEMPLATE.format(
                charset=html.escape(self._charset),
                intro=html.escape(INTRO),
                rows=rows,
                footer="<br>\n".join(html.escape(line) for line in footer_lines),
            )

        lines = [INTRO, ""]
        lines.extend(f"{f.label}: {f.value.strip()}" for f in fields)
        lines.append("")
        lines.append("---")
        lines.extend(footer_lines)
        return "\n".join(lines) + "\n"

    def build_headers(
        self,
        *,
        from_name: str,
        from_email: str,
        mode: ContentType,
        client_identity: str,
    ) -> tuple[str, ...]:
        name = strip_line_breaks(from_name)
        address = strip_line_breaks(from_email)
        return (
            f"From: {formataddr((name, address))}",
            f"Reply-To: {address}",
            "MIME-Version: 1.0",
            f"Content-Type: {mode.value}; charset={self._charset}",
            f"X-Mailer: {strip_line_breaks(self._mailer)}",
            f"X-Contact-Client: {strip_line_breaks(client_identity)}",
        )

    def render(self, request: SubmissionRequest, mode: ContentType) -> RenderedMessage:
        headers = self.build_headers(
            from_name=request.name,
            from_email=request.email,
            mode=mode,
            client_identity=request.client_identity,
        )
        body = self.render_body(request.fields, mode, client_identity=request.client_identity)
        return RenderedMessage(
            to=strip_line_breaks(request.recipient),
            subject=strip_line_breaks(request.subject),
            headers=headers,
            body=body,
            content_type=mode,
        )
