"""Password hashing and JWT issuance/verification for access and refresh tokens."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, Literal

import bcrypt
import jwt

if TYPE_CHECKING:
    from app.core.config import Settings
    from app.models.user import User

# Bcrypt cost (rounds); 12 is a good default for security vs speed.
BCRYPT_ROUNDS = 12

# Min/max lengths for username and password validation (BSIMM / input validation).
USERNAME_MIN_LEN = 1
USERNAME_MAX_LEN = 255
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

TokenType = Literal["access", "refresh"]


class InvalidTokenError(Exception):
    """Raised when a token is malformed, forged, expired or of the wrong type."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


def hash_password(plain_password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def _encode(
    claims: dict[str, Any],
    token_type: TokenType,
    secret: str,
    lifetime: timedelta,
    algorithm: str,
) -> str:
    now = datetime.now(UTC)
    payload: dict[str, Any] = {
        **claims,
        "type": token_type,
        # Unique per token so two issued in the same second never compare equal.
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def create_access_token(user: User, settings: Settings) -> str:
    """Create a short-lived access token carrying the user id and public identity claims."""
    claims = {
        "sub": str(user.id),
        "username": user.username,
        "email": user.email,
        "full_name": user.full_name,
    }
    return _encode(
        claims,
        ACCESS_TOKEN_TYPE,
        settings.ACCESS_TOKEN_SECRET.get_secret_value(),
        timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        settings.JWT_ALGORITHM,
    )


def create_refresh_token(user_id: int, settings: Settings) -> str:
    """Create a long-lived refresh token carrying only the user id."""
    return _encode(
        {"sub": str(user_id)},
        REFRESH_TOKEN_TYPE,
        settings.REFRESH_TOKEN_SECRET.get_secret_value(),
        timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        settings.JWT_ALGORITHM,
    )


def decode_token(
    token: str,
    secret: str,
    token_type: TokenType,
    algorithm: str = "HS256",
) -> dict[str, Any]:
    """
    Verify signature and expiry and return the claims.

    Raises InvalidTokenError when the token is malformed, forged, expired,
    lacks a subject, or was issued as the other token type. Never touches the database.
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require": ["exp", "iat", "sub"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise InvalidTokenError("Token has expired") from e
    except jwt.PyJWTError as e:
        raise InvalidTokenError(f"Token is invalid: {e!s}") from e
    if payload.get("type") != token_type:
        raise InvalidTokenError(f"Expected a {token_type} token")
    if not payload.get("sub"):
        raise InvalidTokenError("Token has no subject")
    return payload


def decode_access_token(token: str, settings: Settings) -> dict[str, Any]:
    """Decode and validate an access token with the access secret."""
    return decode_token(
        token,
        settings.ACCESS_TOKEN_SECRET.get_secret_value(),
        ACCESS_TOKEN_TYPE,
        settings.JWT_ALGORITHM,
    )


def decode_refresh_token(token: str, settings: Settings) -> dict[str, Any]:
    """Decode and validate a refresh token with the refresh secret."""
    return decode_token(
        token,
        settings.REFRESH_TOKEN_SECRET.get_secret_value(),
        REFRESH_TOKEN_TYPE,
        settings.JWT_ALGORITHM,
    )


def token_subject(payload: dict[str, Any]) -> int:
    """Return the integer user id from a decoded payload's sub claim."""
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidTokenError("Invalid token payload") from e
