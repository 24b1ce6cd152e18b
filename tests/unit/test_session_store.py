from __future__ import annotations

import asyncio
import json

from fakes import FakeContext
from session_store import SessionStore

HOUR_MS = 60 * 60 * 1000
COOKIE = {"name": "session", "value": "abc", "domain": "app.example.test", "path": "/"}


def _write_snapshot(path, email="qa@example.com", timestamp=1_000_000, cookies=None) -> None:
    path.write_text(json.dumps({"email": email, "cookies": cookies or [COOKIE], "timestamp": timestamp}),
                    encoding="utf-8")


def test_save_writes_email_cookies_and_timestamp(tmp_path):
    path = tmp_path / "cookies.json"
    store = SessionStore(str(path))

    snapshot = asyncio.run(store.save(FakeContext([COOKIE]), "qa@example.com"))

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["email"] == "qa@example.com"
    assert data["cookies"] == [COOKIE]
    assert data["timestamp"] == snapshot.timestamp
    assert '\n  "email"' in path.read_text(encoding="utf-8")


def test_load_adds_fresh_cookies_and_returns_email(tmp_path):
    path = tmp_path / "cookies.json"
    _write_snapshot(path, timestamp=1_000_000)
    context = FakeContext()

    email = asyncio.run(SessionStore(str(path)).load(context, now_ms=1_000_000 + 23 * HOUR_MS))

    assert email == "qa@example.com"
    assert context.added == [COOKIE]


def test_load_rejects_stale_snapshot(tmp_path):
    path = tmp_path / "cookies.json"
    _write_snapshot(path, timestamp=1_000_000)
    context = FakeContext()

    email = asyncio.run(SessionStore(str(path)).load(context, now_ms=1_000_000 + 24 * HOUR_MS + 1))

    assert email is None
    assert context.added == []


def test_snapshot_exactly_at_max_age_is_fresh(tmp_path):
    path = tmp_path / "cookies.json"
    _write_snapshot(path, timestamp=0)
    store = SessionStore(str(path), max_age_hours=1)

    assert store.is_fresh(store.read_snapshot(), now_ms=HOUR_MS)
    assert not store.is_fresh(store.read_snapshot(), now_ms=HOUR_MS + 1)


def test_missing_or_malformed_file_means_no_session(tmp_path):
    missing = SessionStore(str(tmp_path / "none.json"))
    assert asyncio.run(missing.load(FakeContext())) is None

    broken_path = tmp_path / "broken.json"
    broken_path.write_text("{not json", encoding="utf-8")
    assert asyncio.run(SessionStore(str(broken_path)).load(FakeContext())) is None

    no_email = tmp_path / "no_email.json"
    no_email.write_text(json.dumps({"cookies": [], "timestamp": 1}), encoding="utf-8")
    assert SessionStore(str(no_email)).read_snapshot() is None


def test_cookie_rejection_is_not_raised(tmp_path):
    path = tmp_path / "cookies.json"
    _write_snapshot(path, timestamp=0)
    context = FakeContext()
    context.raise_on_add = True

    assert asyncio.run(SessionStore(str(path)).load(context, now_ms=1)) is None


def test_clear_removes_snapshot(tmp_path):
    path = tmp_path / "cookies.json"
    _write_snapshot(path)
    store = SessionStore(str(path))

    assert store.clear() is True
    assert not path.exists()
    assert store.clear() is False
