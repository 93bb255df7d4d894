from __future__ import annotations

from contact_mailer.pipeline.token_guard import TokenGuard


def test_トークンは256bit以上でセッション内で冪等(store) -> None:
    guard = TokenGuard(store)

    first = guard.issue("session-1")
    second = guard.issue("session-1")

    assert first == second
    assert len(bytes.fromhex(first)) * 8 >= 256


def test_セッションごとに異なるトークン(store) -> None:
    guard = TokenGuard(store)

    assert guard.issue("session-1") != guard.issue("session-2")


def test_一致すれば成功(store) -> None:
    guard = TokenGuard(store)
    token = guard.issue("session-1")

    assert guard.verify_session("session-1", token) is True


def test_不一致は失敗(store) -> None:
    guard = TokenGuard(store)
    guard.issue("session-1")

    assert guard.verify_session("session-1", "forged") is False


def test_保存済みトークンが無ければ提示されても失敗(store) -> None:
    guard = TokenGuard(store)
    token = guard.issue("session-1")

    assert guard.verify_session("session-2", token) is False
    assert guard.verify_session(None, token) is False


def test_どちらかが欠けていれば失敗() -> None:
    assert TokenGuard.verify(None, "abc") is False
    assert TokenGuard.verify("abc", None) is False
    assert TokenGuard.verify("", "") is False
    assert TokenGuard.verify("abc", "abc") is True
