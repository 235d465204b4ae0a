# app/core/security.py
# Password hashing, JWT issue/decode and refresh-token hashing
# Used by: auth endpoints, dependencies.py, user provisioning (admin + CSV import)

import hashlib
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings

# bcrypt with auto-upgrade of older hashes
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

_TEMP_PASSWORD_ALPHABET = string.ascii_letters + string.digits


# ── Password Hashing ──────────────────────────────────────────────────────────

def hash_password(plain_password: str) -> str:
    """Hash a plain-text password using bcrypt."""
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain-text password against a bcrypt hash."""
    return pwd_context.verify(plain_password, hashed_password)


def generate_temporary_password(length: int = 14) -> str:
    """Random password handed to directors created by the organizations CSV import."""
    return "".join(secrets.choice(_TEMP_PASSWORD_ALPHABET) for _ in range(length))


# ── JWT Tokens ────────────────────────────────────────────────────────────────

def _encode(payload: dict, expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {**payload, "iat": now, "exp": now + expires_delta}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: UUID, role: str) -> str:
    """
    Short-lived access token (ACCESS_TOKEN_EXPIRE_MINUTES).

    Payload:
        sub  -- user UUID as string
        role -- teacher | admin | director | superadmin | institutional_manager
        type -- "access"
    """
    return _encode(
        {"sub": str(user_id), "role": role, "type": "access"},
        timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(user_id: UUID) -> str:
    """
    Long-lived refresh token (REFRESH_TOKEN_EXPIRE_DAYS).
    Stored hashed in refresh_tokens; revoked on logout or use.
    A random jti keeps two tokens issued in the same second distinct.
    """
    return _encode(
        {"sub": str(user_id), "type": "refresh", "jti": secrets.token_hex(8)},
        timedelta(days=settings.refresh_token_expire_days),
    )


def decode_token(token: str) -> Optional[dict]:
    """
    Decode and validate a JWT.
    Returns the payload dict, or None if expired or invalid.
    Does NOT check the database -- dependencies.py does that.
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None


def get_token_expiry(days: int = 0, minutes: int = 0) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days, minutes=minutes)


# ── Refresh Token Hashing ─────────────────────────────────────────────────────

def hash_token(token: str) -> str:
    """SHA-256 of a refresh token; only the hash is persisted."""
    return hashlib.sha256(token.encode()).hexdigest()
