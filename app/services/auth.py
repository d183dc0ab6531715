"""Auth flow: register, login and logout on top of a UserStore.

Raises app.core.exceptions errors only; the HTTP layer maps them to status codes.
"""

import logging
from dataclasses import dataclass

import jwt
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.core.config import Settings
from app.core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    UnexpectedError,
    ValidationError,
)
from app.core.security import (
    EMAIL_MAX_LEN,
    FULL_NAME_MAX_LEN,
    PASSWORD_MAX_BYTES,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_password,
)
from app.models import User
from app.services.user_store import UserStore

logger = logging.getLogger(__name__)

ALL_FIELDS_REQUIRED = "All fields are required"
USER_EXISTS = "User already exists"
INVALID_CREDENTIALS = "Invalid credentials"
TOKEN_FAILURE = "Something went wrong while generating refresh and access token"


@dataclass(frozen=True)
class LoginResult:
    """Successful login: the user plus both freshly issued tokens."""

    user: User
    access_token: str
    refresh_token: str


def _clean(value: str | None) -> str:
    return value.strip() if isinstance(value, str) else ""


def normalize_email(email: str | None) -> str:
    return _clean(email).lower()


class AuthService:
    """Orchestrates registration, login and logout against an injected store."""

    def __init__(self, store: UserStore, settings: Settings) -> None:
        self.store = store
        self.settings = settings

    def register(
        self,
        full_name: str | None,
        email: str | None,
        password: str | None,
        username: str | None,
    ) -> User:
        """Create a user; the password is hashed here, before the write is built."""
        full_name = _clean(full_name)
        email = normalize_email(email)
        username = _clean(username)
        if not full_name or not email or not username or not _clean(password):
            raise ValidationError(ALL_FIELDS_REQUIRED)
        _check_lengths(full_name, email, username, password)

        if self.store.find_by_email_or_username(email, username) is not None:
            logger.info("Registration rejected: identifier taken", extra={"username": username})
            raise ConflictError(USER_EXISTS)

        password_hash = hash_password(password, rounds=self.settings.BCRYPT_ROUNDS)
        try:
            user = self.store.create(
                username=username,
                email=email,
                full_name=full_name,
                password_hash=password_hash,
            )
        except IntegrityError as e:
            # Lost a race against a concurrent registration with the same identifier.
            logger.info("Registration rejected by unique index", extra={"username": username})
            raise ConflictError(USER_EXISTS) from e
        except SQLAlchemyError as e:
            logger.exception("Registration failed while saving user")
            raise UnexpectedError("Something went wrong while registering the user") from e

        logger.info("User registered", extra={"user_id": user.id, "username": user.username})
        return user

    def login(
        self,
        password: str | None,
        email: str | None = None,
        username: str | None = None,
    ) -> LoginResult:
        """Verify credentials, issue both tokens and persist the refresh token."""
        email = normalize_email(email)
        username = _clean(username)
        if (not email and not username) or not password:
            raise ValidationError(ALL_FIELDS_REQUIRED)

        if email:
            user = self.store.get_by_email(email)
            if user is None:
                raise NotFoundError("Email not found")
        else:
            user = self.store.get_by_username(username)
            if user is None:
                raise NotFoundError("Username not found")

        if not verify_password(password, user.password_hash):
            logger.info("Login failed: bad password", extra={"user_id": user.id})
            raise AuthenticationError(INVALID_CREDENTIALS)

        try:
            access_token = create_access_token(user.id, user.username, user.email, self.settings)
            refresh_token = create_refresh_token(user.id, self.settings)
            self.store.set_refresh_token(user.id, refresh_token)
        except (jwt.PyJWTError, SQLAlchemyError) as e:
            logger.exception("Token issuance failed", extra={"user_id": user.id})
            raise UnexpectedError(TOKEN_FAILURE) from e

        logger.info("User logged in", extra={"user_id": user.id})
        return LoginResult(user=user, access_token=access_token, refresh_token=refresh_token)

    def logout(self, user_id: int) -> None:
        """Unset the stored refresh token; a no-op when none is stored."""
        try:
            self.store.set_refresh_token(user_id, None)
        except SQLAlchemyError as e:
            logger.exception("Logout failed while clearing refresh token", extra={"user_id": user_id})
            raise UnexpectedError("Something went wrong while logging out") from e
        logger.info("User logged out", extra={"user_id": user_id})


def _check_lengths(full_name: str, email: str, username: str, password: str) -> None:
    if len(username) > USERNAME_MAX_LEN:
        raise ValidationError("Invalid username length.")
    if len(full_name) > FULL_NAME_MAX_LEN:
        raise ValidationError("Invalid full name length.")
    if len(email) > EMAIL_MAX_LEN or "@" not in email:
        raise ValidationError("Invalid email address.")
    if not (PASSWORD_MIN_LEN <= len(password) <= PASSWORD_MAX_LEN):
        raise ValidationError("Invalid password length.")
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValidationError("Password must be at most 72 bytes.")
