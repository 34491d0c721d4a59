"""
auth/errors.py -- Error taxonomy and tagged results for the auth layer.

Every expected failure of register/login is an AuthError subclass carrying
the HTTP status, a machine-readable code, and a client-safe message. The
authenticator does not raise these for control flow -- it returns
Err(error), and callers branch on Ok/Err:

    result = authenticator.login(username, password)
    if isinstance(result, Err):
        return error_response(result.error)
    issued = result.value

MalformedCredentialError is the exception: verify_password() raises it, the
authenticator logs it as a data-integrity problem and converts it to a
plain AuthenticationError before anything reaches the client.

Store and I/O failures are not AuthErrors. They propagate as ordinary
exceptions and end in the app's 500 handler.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class AuthError(Exception):
    status_code: int = 400
    code: str = "auth_error"

    def __init__(self, message: str, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(AuthError):
    """Required input is missing. Field names are safe to report."""

    status_code = 400
    code = "validation_error"

    def __init__(self, fields: list[str]) -> None:
        subject = " and ".join(fields)
        verb = "is" if len(fields) == 1 else "are"
        super().__init__(f"{subject[:1].upper()}{subject[1:]} {verb} required.", detail=", ".join(fields))
        self.fields = fields


class ConflictError(AuthError):
    """An account already holds the given unique value."""

    status_code = 400
    code = "conflict"

    def __init__(self, field: str = "username") -> None:
        super().__init__(f"{field.capitalize()} already exists.", detail=field)
        self.field = field


class AuthenticationError(AuthError):
    """Bad credentials. Deliberately identical for unknown users and wrong passwords."""

    status_code = 401
    code = "bad_credentials"

    def __init__(self) -> None:
        super().__init__("Invalid credentials.")


class MalformedCredentialError(Exception):
    """A stored password hash is not in "<keyHex>.<saltHex>" form.

    Signals a corrupt or legacy record. Never shown to clients.
    """


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: AuthError


Result = Union[Ok[T], Err]
