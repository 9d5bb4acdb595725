"""Password hashing, session token signing and reset-token helpers.

Session flow:
    1. login → verify password → ``issue_token(claims, ttl)`` → HTTP-only cookie
    2. every request → ``verify_token(cookie)`` → claims dict (stateless, no
       server-side session table)

Tokens are HS256 JWTs signed with ``JWT_SECRET_KEY``. Nothing is stored
server-side, so logout only deletes the cookie and an issued token stays
valid until its ``exp``. Rotating the secret invalidates every session.
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
import jwt

from festauth.core.config import get_settings
from festauth.core.exceptions import InvalidToken

# bcrypt only looks at the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72


# ── Password helpers ─────────────────────────────────────────────────────────

def hash_password(plain: str) -> str:
    rounds = get_settings().bcrypt_rounds
    return bcrypt.hashpw(plain.encode()[:_BCRYPT_MAX_BYTES], bcrypt.gensalt(rounds)).decode()


def verify_password(plain: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode()[:_BCRYPT_MAX_BYTES], hashed.encode())
    except ValueError:
        # Malformed hash in the store
        return False


# ── Session token helpers ────────────────────────────────────────────────────

def issue_token(claims: dict[str, Any], ttl: timedelta, *, now: datetime | None = None) -> str:
    """Sign *claims* and add ``iat`` / ``exp`` registered claims."""
    settings = get_settings()
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        **claims,
        "iat": issued_at,
        "exp": issued_at + ttl,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict[str, Any]:
    """Return the decoded payload or raise ``InvalidToken``.

    Expiry, bad signature and garbage input all raise the same error.
    """
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "iat"]},
        )
    except jwt.InvalidTokenError:
        raise InvalidToken() from None


# ── Password reset tokens ────────────────────────────────────────────────────

def generate_reset_token() -> tuple[str, str]:
    """Return ``(plaintext, sha256_hex)``; only the hash is ever persisted."""
    plain = secrets.token_hex(32)
    return plain, hash_reset_token(plain)


def hash_reset_token(plain: str) -> str:
    return hashlib.sha256(plain.encode()).hexdigest()
