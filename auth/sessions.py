"""
auth/sessions.py -- Server-side session storage, session tokens, and the session cookie.

Session tokens:
  new_session_token() returns secrets.token_urlsafe(32) -- 256 bits of
  entropy, handed to the browser in an httpOnly cookie and never stored.
  The store is keyed by session_id(token) = HMAC-SHA256(SECRET_KEY, token).
  A leaked user_sessions table therefore yields no usable cookies, and the
  HMAC makes lookup a plain O(1) primary-key read.

Session records:
  payload is a small JSON object. The authenticator stores only
  {"user_id": ...}; identity is re-read from the user store on every
  request, so profile changes and deletions take effect immediately.

  expires_at is absolute (epoch seconds). get() treats an expired row as
  missing and deletes it on the way out; purge_expired() sweeps the rest.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import secrets
import time

from sqlalchemy import Column, Float, MetaData, String, Table, Text, func, select
from sqlalchemy.engine import Engine

from auth.store import make_engine

_metadata = MetaData()

_sessions = Table(
    "user_sessions",
    _metadata,
    Column("sid", String(64), primary_key=True),  # HMAC-SHA256 hex of the cookie token
    Column("payload", Text, nullable=False),  # JSON
    Column("expires_at", Float, nullable=False, index=True),
)


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


def new_session_token() -> str:
    return secrets.token_urlsafe(32)


def session_id(token: str, secret_key: str) -> str:
    """Return HMAC-SHA256(secret_key, token) as hex -- the store key for a token."""
    return hmac.new(secret_key.encode(), token.encode(), hashlib.sha256).hexdigest()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class SessionStore:
    """Session persistence with absolute per-record expiry.

    Usage:
        sessions = SessionStore("sqlite:///devdash.db")
        sessions.put(sid, {"user_id": "..."}, ttl=86400)
        payload = sessions.get(sid)     # dict or None
        sessions.destroy(sid)
        sessions.purge_expired()        # call periodically
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        _metadata.create_all(self.engine)

    def put(self, sid: str, payload: dict, ttl: int) -> None:
        """Store payload under sid for ttl seconds, replacing any existing record."""
        expires_at = time.time() + ttl
        data = json.dumps(payload)
        with self.engine.connect() as conn:
            conn.execute(_sessions.delete().where(_sessions.c.sid == sid))
            conn.execute(_sessions.insert().values(sid=sid, payload=data, expires_at=expires_at))
            conn.commit()

    def get(self, sid: str) -> dict | None:
        """Return the payload for sid, or None if absent, expired, or unreadable."""
        with self.engine.connect() as conn:
            row = conn.execute(
                select(_sessions.c.payload, _sessions.c.expires_at).where(_sessions.c.sid == sid)
            ).fetchone()
        if row is None:
            return None
        if row.expires_at <= time.time():
            self.destroy(sid)
            return None
        try:
            payload = json.loads(row.payload)
        except ValueError:
            return None
        return payload if isinstance(payload, dict) else None

    def destroy(self, sid: str) -> None:
        """Delete the record for sid. Deleting a missing record is not an error."""
        with self.engine.connect() as conn:
            conn.execute(_sessions.delete().where(_sessions.c.sid == sid))
            conn.commit()

    def purge_expired(self) -> int:
        """Delete all expired records. Returns number of rows removed."""
        with self.engine.connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.expires_at <= time.time()))
            conn.commit()
        return result.rowcount

    def count(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_sessions)).scalar()
        return result or 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_session_cookie(response, token: str, *, name: str, max_age: int, secure: bool) -> None:
    """Write the session token as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POSTs (CSRF mitigation).
    secure: only sent over HTTPS when SECURE_COOKIES=true (set in production).
    max_age: matches the server-side record's TTL so both expire together.
    """
    response.set_cookie(
        name,
        value=token,
        httponly=True,
        samesite="lax",
        secure=secure,
        max_age=max_age,
    )


def clear_session_cookie(response, *, name: str, secure: bool) -> None:
    response.delete_cookie(name, httponly=True, samesite="lax", secure=secure)
