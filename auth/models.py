"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, near-zero logic). Stores and the
authenticator do the work; these classes own the domain shape.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass


@dataclass
class User:
    """A stored credential record.

    username is always the normalized (lowercased) form. The store
    assigns id, created_at and updated_at on insert.

    password_hash is "<derivedKeyHex>.<saltHex>" and must never leave the
    server. Convert to SafeUser before handing a record to anything that
    serializes it.
    """

    username: str
    password_hash: str
    id: str | None = None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    profile_image_url: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def to_safe(self) -> SafeUser:
        data = asdict(self)
        data.pop("password_hash")
        return SafeUser(**data)


@dataclass(frozen=True)
class SafeUser:
    """The safe view of a User: every field except password_hash.

    This is the identity exposed to request handlers and response bodies.
    """

    id: str
    username: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    profile_image_url: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class IssuedSession:
    """Result of a successful login or registration.

    token is the raw session token destined for the client cookie. It is
    never persisted; the session store only sees its HMAC.
    """

    token: str
    user: SafeUser
    max_age: int
