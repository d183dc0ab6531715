"""Password hashing and JWT creation/verification for authentication."""

import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt

from app.core.config import Settings, get_settings

# Min/max lengths for registration input validation.
USERNAME_MAX_LEN = 255
FULL_NAME_MAX_LEN = 255
EMAIL_MAX_LEN = 320
PASSWORD_MIN_LEN = 1
PASSWORD_MAX_LEN = 128
# bcrypt only reads the first 72 bytes of its input.
PASSWORD_MAX_BYTES = 72

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def hash_password(plain_password: str, rounds: int | None = None) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    if not plain_password or not plain_password.strip():
        raise ValueError("Refusing to hash an empty password")
    if rounds is None:
        rounds = get_settings().BCRYPT_ROUNDS
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError, AttributeError):
        return False


def _encode(claims: dict[str, Any], secret: str, lifetime: timedelta, algorithm: str) -> str:
    now = datetime.now(UTC)
    payload = {
        **claims,
        "iat": now,
        "exp": now + lifetime,
        # Random id so two tokens with the same claims issued in the same second still differ.
        "jti": secrets.token_hex(16),
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def create_access_token(
    user_id: str | int,
    username: str,
    email: str,
    settings: Settings | None = None,
) -> str:
    """Create a short-lived access token carrying user id (sub), username and email."""
    settings = settings or get_settings()
    return _encode(
        {
            "sub": str(user_id),
            "username": username,
            "email": email,
            "type": ACCESS_TOKEN_TYPE,
        },
        settings.ACCESS_TOKEN_SECRET.get_secret_value(),
        settings.access_token_lifetime,
        settings.JWT_ALGORITHM,
    )


def create_refresh_token(user_id: str | int, settings: Settings | None = None) -> str:
    """Create a long-lived refresh token carrying only the user id (sub)."""
    settings = settings or get_settings()
    return _encode(
        {"sub": str(user_id), "type": REFRESH_TOKEN_TYPE},
        settings.REFRESH_TOKEN_SECRET.get_secret_value(),
        settings.refresh_token_lifetime,
        settings.JWT_ALGORITHM,
    )


def decode_access_token(token: str, settings: Settings | None = None) -> dict[str, Any]:
    """
    Decode and validate an access token; return payload (sub, username, email, exp, iat, jti).
    Raises jwt.PyJWTError on invalid, expired or non-access tokens.
    """
    settings = settings or get_settings()
    payload = jwt.decode(
        token,
        settings.ACCESS_TOKEN_SECRET.get_secret_value(),
        algorithms=[settings.JWT_ALGORITHM],
        options={"require": ["exp", "sub"]},
    )
    if payload.get("type") != ACCESS_TOKEN_TYPE:
        raise jwt.InvalidTokenError("Not an access token")
    return payload
