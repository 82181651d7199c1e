"""
JWT token creation / verification, password and fingerprint-credential hashing.

Fingerprint credentials (the WebAuthn-style blob produced by the browser)
are stored exactly like passwords: bcrypt hash at rest, opaque comparison
on verify.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# ── Passwords & credentials ─────────────────────────────────────────
def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def get_password_hash(plain: str) -> str:
    return pwd_context.hash(plain)


def hash_credential(credential: str) -> str:
    """Hash a fingerprint credential blob for storage."""
    return pwd_context.hash(credential)


def verify_credential(credential: str, hashed: str | None) -> bool:
    """Opaque comparison of a submitted credential against the stored hash."""
    if not hashed or not credential:
        return False
    try:
        return pwd_context.verify(credential, hashed)
    except (ValueError, TypeError):
        # Malformed stored hash is a mismatch, never a match
        return False


# ── JWT tokens ──────────────────────────────────────────────────────
def _encode(subject: str | Any, token_type: str, lifetime: timedelta, **claims: Any) -> str:
    payload = {
        "exp": datetime.now(timezone.utc) + lifetime,
        "sub": str(subject),
        "type": token_type,
        **claims,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def _decode(token: str, token_type: str) -> dict | None:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != token_type:
        return None
    return payload


def create_access_token(
    subject: str | Any,
    expires_delta: timedelta | None = None,
    role: str | None = None,
) -> str:
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    if role is None:
        return _encode(subject, "access", lifetime)
    return _encode(subject, "access", lifetime, role=role)


def create_refresh_token(subject: str | Any) -> str:
    return _encode(subject, "refresh", timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))


def decode_access_token(token: str) -> dict | None:
    """Return payload dict if *access* token is valid, else ``None``."""
    return _decode(token, "access")


def decode_refresh_token(token: str) -> dict | None:
    """Return payload dict if *refresh* token is valid, else ``None``."""
    return _decode(token, "refresh")
