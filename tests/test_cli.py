"""Tests for main.py -- operator CLI.

Covers:
- create-user stores a normalized account and leaves no session behind
- create-user reports conflicts and password mismatches with exit code 1
- purge-sessions removes expired records
"""

from __future__ import annotations

import pytest

import main as cli
from auth.sessions import SessionStore
from auth.store import UserStore
from core.config import get_settings


@pytest.fixture
def db_url(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    get_settings.cache_clear()
    yield url
    get_settings.cache_clear()


def _answer_passwords(monkeypatch, *answers: str) -> None:
    replies = iter(answers)
    monkeypatch.setattr(cli.getpass, "getpass", lambda prompt="": next(replies))


def test_create_user(db_url, monkeypatch, capsys) -> None:
    _answer_passwords(monkeypatch, "pw", "pw")
    assert cli.main(["create-user", "Zoe", "--email", "zoe@example.com"]) == 0
    assert "Created user 'zoe'" in capsys.readouterr().out

    users = UserStore(db_url)
    sessions = SessionStore(db_url)
    try:
        created = users.find_by_normalized_username("zoe")
        assert created is not None
        assert created.email == "zoe@example.com"
        assert sessions.count() == 0
    finally:
        users.close()
        sessions.close()


def test_create_user_conflict(db_url, monkeypatch, capsys) -> None:
    _answer_passwords(monkeypatch, "pw", "pw", "pw", "pw")
    assert cli.main(["create-user", "zoe"]) == 0
    assert cli.main(["create-user", "ZOE"]) == 1
    assert "Username already exists." in capsys.readouterr().out


def test_create_user_password_mismatch(db_url, monkeypatch, capsys) -> None:
    _answer_passwords(monkeypatch, "one", "two")
    assert cli.main(["create-user", "yan"]) == 1
    assert "Password is required." in capsys.readouterr().out


def test_purge_sessions(db_url, capsys) -> None:
    sessions = SessionStore(db_url)
    try:
        sessions.put("expired", {"user_id": "x"}, ttl=-1)
        sessions.put("live", {"user_id": "y"}, ttl=60)
    finally:
        sessions.close()
    assert cli.main(["purge-sessions"]) == 0
    assert "Removed 1 expired session(s)." in capsys.readouterr().out
