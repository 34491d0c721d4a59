"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The session token travels in the session cookie (SESSION_COOKIE_NAME).
The Authenticator on app.state turns it into a SafeUser by re-reading the
user record, so there is no per-request identity cache to go stale.

try_get_current_user() is the soft variant (returns None on failure).
get_current_user() wraps it and raises HTTP 401 if unauthenticated. It is
the only thing other application routes need to depend on.

Layer rule: auth/dependencies.py may import from fastapi because this module
is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.authenticator import Authenticator
from auth.models import SafeUser


def session_token(request: Request) -> str | None:
    """Return the raw session token from the request cookie, if any."""
    name = request.app.state.settings.session_cookie_name
    return request.cookies.get(name) or None


def try_get_current_user(request: Request) -> SafeUser | None:
    """Resolve the request's identity. Never raises for bad or expired tokens."""
    authenticator: Authenticator = request.app.state.authenticator
    return authenticator.resolve(session_token(request))


def get_current_user(request: Request) -> SafeUser:
    """Require authentication. Raises HTTP 401 if the request is Anonymous.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: SafeUser = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return user
