"""本文とヘッダー生成のテスト。"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from contact_mailer.pipeline.models import ContentType, FormField
from contact_mailer.pipeline.renderer import ContentRenderer, strip_line_breaks

NOW = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def renderer() -> ContentRenderer:
    return ContentRenderer(clock=lambda: NOW)


def test_テキスト本文は項目順とフッターを含む(renderer: ContentRenderer) -> None:
    fields = [FormField("Name", " Jane Doe "), FormField("Message", "Hello\nworld")]

    body = renderer.render_body(fields, ContentType.PLAIN_TEXT, client_identity="abc123")

    lines = body.splitlines()
    assert lines[0] == "You have received a new message from your website contact form."
    assert lines.index("Name: Jane Doe") < lines.index("Message: Hello")
    assert "---" in lines
    assert "Sent at: 2026-10-18 09:30:00 UTC" in lines
    assert "Client: abc123" in lines


def test_HTML本文は値をエスケープする(renderer: ContentRenderer) -> None:
    fields = [
        FormField("Name", "<script>alert(1)</script>"),
        FormField("Message", 'a & b "quoted"\nline2'),
    ]

    body = renderer.render_body(fields, ContentType.HTML, client_identity="<id>")

    assert "<script>" not in body
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in body
    assert "a &amp; b &quot;quoted&quot;<br>" in body
    assert "Client: &lt;id&gt;" in body
    assert "Sent at: 2026-10-18 09:30:00 UTC" in body


def test_ヘッダーは差出人と形式を反映する(renderer: ContentRenderer) -> None:
    headers = renderer.build_headers(
        from_name="Jane Doe",
        from_email="jane@example.com",
        mode=ContentType.HTML,
        client_identity="abc123",
    )

    assert headers[0] == "From: Jane Doe <jane@example.com>"
    assert "Reply-To: jane@example.com" in headers
    assert "Content-Type: text/html; charset=UTF-8" in headers
    assert any(h.startswith("X-Mailer: ") for h in headers)


@pytest.mark.parametrize("separator", ["\r\n", "\n", "\r"])
def test_改行を含む名前でヘッダー注入できない(renderer: ContentRenderer, separator: str) -> None:
    headers = renderer.build_headers(
        from_name=f"Eve{separator}Bcc: victim@example.com",
        from_email="eve@example.com",
        mode=ContentType.PLAIN_TEXT,
        client_identity=f"id{separator}X-Injected: 1",
    )

    for header in headers:
        assert "\r" not in header
        assert "\n" not in header
    assert not any(h.lower().startswith("bcc:") for h in headers)
    assert not any(h.lower().startswith("x-injected:") for h in headers)


def test_件名と宛先からも改行を除く(renderer: ContentRenderer, make_submission) -> None:
    request = make_submission(subject="Hello\r\nBcc: victim@example.com")

    message = renderer.render(request, ContentType.PLAIN_TEXT)

    assert message.subject == "HelloBcc: victim@example.com"
    assert message.to == "owner@example.com"
    assert message.content_type is ContentType.PLAIN_TEXT


def test_strip_line_breaks() -> None:
    assert strip_line_breaks(" a\r\nb\n ") == "ab"
    assert strip_line_breaks(None) == ""
