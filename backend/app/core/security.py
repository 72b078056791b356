"""
Password hashing, JWT issuance/verification and auth cookie handling.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
import jwt
from fastapi import Response
from loguru import logger

from app.core.config import settings
from app.core.exceptions import ConfigurationError

# bcrypt only looks at the first 72 bytes
_BCRYPT_MAX_BYTES = 72


# ==================== Passwords ====================


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Hash password with a fresh salt at the configured cost factor."""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    """Check plaintext password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(
            _password_bytes(password), hashed_password.encode("utf-8")
        )
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


# ==================== Tokens ====================


def _signing_secret() -> str:
    if not settings.jwt_secret_key:
        raise ConfigurationError("JWT_SECRET_KEY is not configured")
    return settings.jwt_secret_key


def create_access_token(claims: dict[str, Any]) -> str:
    """
    Sign a time-bound token.

    Args:
        claims: Identity claims (id, email, role)

    Returns:
        Encoded JWT

    Raises:
        ConfigurationError: If no signing secret is configured
    """
    secret = _signing_secret()
    now = datetime.now(timezone.utc)
    payload = {
        **claims,
        "iat": now,
        "exp": now + timedelta(days=settings.jwt_expire_days),
    }
    return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """
    Verify and decode a token.

    Returns:
        Claims, or None if the token is expired, tampered or malformed

    Raises:
        ConfigurationError: If no signing secret is configured
    """
    secret = _signing_secret()
    try:
        return jwt.decode(token, secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        logger.debug("Rejected expired auth token")
        return None
    except jwt.InvalidTokenError as e:
        logger.debug(f"Rejected invalid auth token: {e}")
        return None


# ==================== Cookie ====================


def set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=60 * 60 * 24 * settings.jwt_expire_days,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )


def clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.auth_cookie_name,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
