"""Password hashing and JWT session tokens."""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.config import settings

ACCESS = "access"
REFRESH = "refresh"

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)


def _encode(subject: str, token_type: str, expires_delta: timedelta) -> str:
    now = datetime.now(UTC)
    payload: dict[str, Any] = {
        "sub": subject,
        "type": token_type,
        "iat": now,
        "exp": now + expires_delta,
        # Distinguishes tokens issued in the same second
        "jti": uuid4().hex,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(subject: str, expires_delta: timedelta | None = None) -> str:
    """
    Create a JWT access token.

    Args:
        subject: Identity ID the token is issued for
        expires_delta: Optional expiration time delta

    Returns:
        Encoded JWT token
    """
    return _encode(
        subject,
        ACCESS,
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(subject: str, expires_delta: timedelta | None = None) -> str:
    """
    Create a JWT refresh token.

    Args:
        subject: Identity ID the token is issued for
        expires_delta: Optional expiration time delta

    Returns:
        Encoded JWT refresh token
    """
    return _encode(
        subject,
        REFRESH,
        expires_delta or timedelta(days=settings.refresh_token_expire_days),
    )


def decode_token(token: str, token_type: str) -> dict[str, Any] | None:
    """
    Decode and validate a JWT of the given type.

    Args:
        token: JWT to decode
        token_type: ``"access"`` or ``"refresh"``

    Returns:
        Decoded payload or None if invalid, expired or of another type
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None

    if payload.get("type") != token_type:
        return None
    return payload


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Decode an access token."""
    return decode_token(token, ACCESS)


def decode_refresh_token(token: str) -> dict[str, Any] | None:
    """Decode a refresh token."""
    return decode_token(token, REFRESH)


def seconds_until_expiry(payload: dict[str, Any]) -> int:
    """Remaining lifetime of a decoded token, at least one second."""
    remaining = int(payload.get("exp", 0)) - int(datetime.now(UTC).timestamp())
    return max(remaining, 1)
