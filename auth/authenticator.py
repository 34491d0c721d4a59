"""
auth/authenticator.py -- Registration, login, logout and per-request identity.

The Authenticator owns the session-identity lifecycle:

  Anonymous --register/login--> Authenticated --logout--> Anonymous

It depends only on a UserStore, a SessionStore and the HMAC secret -- no
FastAPI types -- so route handlers, the CLI and tests all drive it directly.

Expected failures come back as Err(AuthError) rather than exceptions.
Store errors (database down, etc.) propagate untouched.

Timing equalization:
  login() always runs scrypt, even for an unknown username. An unknown user
  is verified against _DUMMY_HASH, so the two failure paths cost the same
  and response time does not reveal which usernames exist.

Session fixation:
  register() and login() accept the token the client already holds and
  destroy it before issuing a new one.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from auth.errors import (
    AuthenticationError,
    ConflictError,
    Err,
    MalformedCredentialError,
    Ok,
    Result,
    ValidationError,
)
from auth.models import IssuedSession, SafeUser, User
from auth.passwords import hash_password, verify_password
from auth.sessions import SessionStore, new_session_token, session_id
from auth.store import UserStore

logger = logging.getLogger("devdash.auth")

# Computed once at import so the first unknown-user login is not measurably
# slower than later ones.
_DUMMY_HASH: str = hash_password("devdash_timing_dummy")


def normalize_username(username: str) -> str:
    return username.lower()


class Authenticator:
    """Credential authentication and session identity.

    Usage:
        authn = Authenticator(UserStore(url), SessionStore(url), secret_key, session_ttl=86400)
        result = authn.login("alice", "secret")
        if isinstance(result, Ok):
            token = result.value.token        # goes into the cookie
        user = authn.resolve(token)           # SafeUser | None, on every request
        authn.logout(token)
    """

    def __init__(
        self,
        user_store: UserStore,
        session_store: SessionStore,
        secret_key: str,
        session_ttl: int = 24 * 60 * 60,
    ) -> None:
        self.user_store = user_store
        self.session_store = session_store
        self._secret_key = secret_key
        self.session_ttl = session_ttl

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        username: str | None,
        password: str | None,
        profile: dict | None = None,
        previous_token: str | None = None,
    ) -> Result[IssuedSession]:
        """Create an account and log it in.

        profile may carry email, first_name, last_name, profile_image_url.
        Missing fields are stored as None; other keys are ignored.
        """
        missing = []
        if not username or not username.strip():
            missing.append("username")
        if not password:
            missing.append("password")
        if missing:
            return Err(ValidationError(missing))

        normalized = normalize_username(username)
        if self.user_store.find_by_normalized_username(normalized) is not None:
            return Err(ConflictError("username"))

        profile = profile or {}
        candidate = User(
            username=normalized,
            password_hash=hash_password(password),
            email=profile.get("email"),
            first_name=profile.get("first_name"),
            last_name=profile.get("last_name"),
            profile_image_url=profile.get("profile_image_url"),
        )
        try:
            created = self.user_store.insert(candidate)
        except IntegrityError:
            # Lost a race with a concurrent registration, or the email is taken.
            if self.user_store.find_by_normalized_username(normalized) is not None:
                return Err(ConflictError("username"))
            return Err(ConflictError("email"))

        logger.info("Registered user %s (id=%s)", created.username, created.id)
        return Ok(self._establish(created.to_safe(), previous_token))

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def login(
        self,
        username: str | None,
        password: str | None,
        previous_token: str | None = None,
    ) -> Result[IssuedSession]:
        """Check a username/password pair and open a session on success.

        Unknown user, wrong password and a corrupt stored hash all return the
        same AuthenticationError.
        """
        if not username or not password:
            verify_password(password or "", _DUMMY_HASH)
            return Err(AuthenticationError())

        user = self.user_store.find_by_normalized_username(normalize_username(username))
        if user is None:
            # Equalize timing -- do NOT return before running scrypt.
            verify_password(password, _DUMMY_HASH)
            logger.info("Login failed: unknown username")
            return Err(AuthenticationError())

        try:
            matched = verify_password(password, user.password_hash)
        except MalformedCredentialError:
            logger.error("Stored password hash for user id=%s is malformed; operator attention required", user.id)
            return Err(AuthenticationError())

        if not matched:
            logger.info("Login failed: bad password for user id=%s", user.id)
            return Err(AuthenticationError())

        return Ok(self._establish(user.to_safe(), previous_token))

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def logout(self, token: str | None) -> None:
        """Destroy the server-side session. Safe to call with no or unknown token."""
        if token:
            self.session_store.destroy(session_id(token, self._secret_key))

    def resolve(self, token: str | None) -> SafeUser | None:
        """Return the safe view for the session token, or None if Anonymous.

        The record is re-fetched from the user store every time. A session
        whose user no longer exists is destroyed.
        """
        if not token:
            return None
        sid = session_id(token, self._secret_key)
        payload = self.session_store.get(sid)
        if payload is None:
            return None
        user_id = payload.get("user_id")
        if not isinstance(user_id, str) or not user_id:
            return None
        user = self.user_store.get_by_id(user_id)
        if user is None:
            logger.info("Dropping session for missing user id=%s", user_id)
            self.session_store.destroy(sid)
            return None
        return user.to_safe()

    def _establish(self, user: SafeUser, previous_token: str | None) -> IssuedSession:
        if previous_token:
            self.session_store.destroy(session_id(previous_token, self._secret_key))
        token = new_session_token()
        self.session_store.put(
            session_id(token, self._secret_key),
            {"user_id": user.id},
            ttl=self.session_ttl,
        )
        return IssuedSession(token=token, user=user, max_age=self.session_ttl)
