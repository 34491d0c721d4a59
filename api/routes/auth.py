"""
api/routes/auth.py -- Registration, login, logout and current-identity endpoints.

Routes:
  POST /api/register   -- create account; sets session cookie; 201
  POST /api/login      -- password login; sets session cookie; 200 / 401
  POST /api/logout     -- destroys the session; always 200
  GET  /api/user       -- current identity (requires auth); 200 / 401

Security:
  Register and login are rate-limited per client IP (AUTH_RATE_LIMIT).
  Login answers "Invalid credentials." for both unknown user and wrong
  password; Authenticator.login() also equalizes their timing.
  Cache-Control: no-store on register/login responses.
  Register and login are sync handlers, so FastAPI runs them in its thread
  pool and scrypt never blocks the event loop.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, LoginRequest, MessageResponse, RegisterRequest, UserResponse
from auth.authenticator import Authenticator
from auth.dependencies import get_current_user, session_token
from auth.errors import AuthError, Err
from auth.models import IssuedSession, SafeUser
from auth.sessions import clear_session_cookie, set_session_cookie
from core.config import get_settings

# Auth policy:
# - POST /api/register:  public
# - POST /api/login:     public
# - POST /api/logout:    public -- logging out an anonymous session is a no-op
# - GET  /api/user:      requires auth (get_current_user)
router = APIRouter()


def _auth_rate_limit() -> str:
    # Read per request so AUTH_RATE_LIMIT follows the current settings.
    return get_settings().auth_rate_limit


@router.post("/register", response_model=UserResponse, status_code=201)
@limiter.limit(_auth_rate_limit)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create an account and log it in. No separate login step is needed."""
    authenticator: Authenticator = request.app.state.authenticator
    result = authenticator.register(
        body.username,
        body.password,
        body.profile(),
        previous_token=session_token(request),
    )
    if isinstance(result, Err):
        return _error_response(result.error)
    return _session_response(request, result.value, status_code=201)


@router.post("/login", response_model=UserResponse)
@limiter.limit(_auth_rate_limit)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username (any case) and password; set the session cookie."""
    authenticator: Authenticator = request.app.state.authenticator
    result = authenticator.login(body.username, body.password, previous_token=session_token(request))
    if isinstance(result, Err):
        return _error_response(result.error)
    return _session_response(request, result.value, status_code=200)


@router.post("/logout", response_model=MessageResponse)
def logout(request: Request) -> JSONResponse:
    """Destroy the server-side session and clear the cookie."""
    settings = request.app.state.settings
    authenticator: Authenticator = request.app.state.authenticator
    authenticator.logout(session_token(request))
    resp = JSONResponse(content=MessageResponse(message="Logged out.").model_dump())
    clear_session_cookie(resp, name=settings.session_cookie_name, secure=settings.secure_cookies)
    return resp


@router.get("/user", response_model=UserResponse)
def current_user(user: SafeUser = Depends(get_current_user)) -> UserResponse:
    """Return the safe view of the authenticated user."""
    return UserResponse.from_safe_user(user)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _session_response(request: Request, issued: IssuedSession, status_code: int) -> JSONResponse:
    settings = request.app.state.settings
    resp = JSONResponse(
        status_code=status_code,
        content=UserResponse.from_safe_user(issued.user).model_dump(by_alias=True),
    )
    set_session_cookie(
        resp,
        issued.token,
        name=settings.session_cookie_name,
        max_age=issued.max_age,
        secure=settings.secure_cookies,
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


def _error_response(error: AuthError) -> JSONResponse:
    resp = JSONResponse(
        status_code=error.status_code,
        content=ErrorResponse(
            error=ErrorDetail(code=error.code, message=error.message, detail=error.detail)
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp
