"""Unit tests for auth/sessions.py -- SessionStore and token helpers.

Covers:
- put/get round-trip, replacement on re-put
- expired records read as missing and are deleted on read
- destroy() is idempotent
- purge_expired() removes only expired rows
- session_id() is deterministic per secret and never equals the token
"""

from auth.sessions import SessionStore, new_session_token, session_id


class TestSessionStore:
    def test_put_then_get(self, session_store: SessionStore) -> None:
        session_store.put("sid-1", {"user_id": "u1"}, ttl=60)
        assert session_store.get("sid-1") == {"user_id": "u1"}

    def test_get_missing(self, session_store: SessionStore) -> None:
        assert session_store.get("nope") is None

    def test_put_replaces(self, session_store: SessionStore) -> None:
        session_store.put("sid-1", {"user_id": "u1"}, ttl=60)
        session_store.put("sid-1", {"user_id": "u2"}, ttl=60)
        assert session_store.get("sid-1") == {"user_id": "u2"}
        assert session_store.count() == 1

    def test_expired_reads_as_missing_and_is_deleted(self, session_store: SessionStore) -> None:
        session_store.put("old", {"user_id": "u1"}, ttl=-1)
        assert session_store.get("old") is None
        assert session_store.count() == 0

    def test_destroy_is_idempotent(self, session_store: SessionStore) -> None:
        session_store.put("sid-1", {"user_id": "u1"}, ttl=60)
        session_store.destroy("sid-1")
        session_store.destroy("sid-1")
        session_store.destroy("never-existed")
        assert session_store.get("sid-1") is None

    def test_purge_expired(self, session_store: SessionStore) -> None:
        session_store.put("live", {"user_id": "u1"}, ttl=60)
        session_store.put("dead-1", {"user_id": "u2"}, ttl=-1)
        session_store.put("dead-2", {"user_id": "u3"}, ttl=-1)
        assert session_store.purge_expired() == 2
        assert session_store.count() == 1
        assert session_store.get("live") == {"user_id": "u1"}


class TestTokens:
    def test_tokens_are_unique_and_long(self) -> None:
        tokens = {new_session_token() for _ in range(50)}
        assert len(tokens) == 50
        assert all(len(t) >= 43 for t in tokens)

    def test_session_id_deterministic_per_secret(self) -> None:
        token = new_session_token()
        a = session_id(token, "k" * 32)
        assert a == session_id(token, "k" * 32)
        assert a != session_id(token, "j" * 32)
        assert a != token
        assert len(a) == 64
