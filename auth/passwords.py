"""
auth/passwords.py -- Salted scrypt password hashing.

Stored form: "<derivedKeyHex>.<saltHex>"
  - salt: 16 random bytes, hex-encoded. The hex string itself (its ASCII
    bytes) is what goes into the KDF, so records written by the Node
    version of the dashboard verify here unchanged.
  - derived key: scrypt(N=16384, r=8, p=1), 64 bytes, hex-encoded.

The hex alphabet has no ".", so splitting on the first "." is unambiguous.

scrypt is deliberately slow (tens of milliseconds, ~16 MiB). Call these
from sync route handlers or a worker thread, never directly on the event loop.

Layer rule: stdlib only, plus auth.errors.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets

from auth.errors import MalformedCredentialError

SALT_BYTES = 16
KEY_LENGTH = 64

_SCRYPT_N = 16384
_SCRYPT_R = 8
_SCRYPT_P = 1
# 128 * N * r is ~16 MiB; leave headroom above OpenSSL's 32 MiB default.
_SCRYPT_MAXMEM = 64 * 1024 * 1024

_SEPARATOR = "."


def _derive(plain: str, salt_hex: str) -> bytes:
    return hashlib.scrypt(
        plain.encode("utf-8"),
        salt=salt_hex.encode("ascii"),
        n=_SCRYPT_N,
        r=_SCRYPT_R,
        p=_SCRYPT_P,
        maxmem=_SCRYPT_MAXMEM,
        dklen=KEY_LENGTH,
    )


def hash_password(plain: str) -> str:
    """Return the stored form of a plaintext password. A fresh salt is drawn every call."""
    salt_hex = secrets.token_bytes(SALT_BYTES).hex()
    return f"{_derive(plain, salt_hex).hex()}{_SEPARATOR}{salt_hex}"


def verify_password(plain: str, stored: str) -> bool:
    """Return True if plain matches the stored form.

    The comparison is hmac.compare_digest, so it never exits early on the
    first differing byte. A key of the wrong length simply returns False.

    Raises MalformedCredentialError if stored is not "<hex>.<salt>". Callers
    treat that as an authentication failure and report it to operators.
    """
    key_hex, sep, salt_hex = (stored or "").partition(_SEPARATOR)
    if not sep or not key_hex or not salt_hex:
        raise MalformedCredentialError("stored password hash has no '<key>.<salt>' separator")
    try:
        expected = bytes.fromhex(key_hex)
        salt_hex.encode("ascii")
    except ValueError as exc:  # includes UnicodeEncodeError
        raise MalformedCredentialError("stored password hash is not hex-encoded") from exc
    return hmac.compare_digest(_derive(plain, salt_hex), expected)
