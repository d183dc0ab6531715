"""Register/login/logout routes, auth cookies and the session guard (get_current_user)."""

from typing import Annotated

import jwt
from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.exceptions import AuthenticationError
from app.core.security import decode_access_token
from app.schemas.auth import (
    CurrentUser,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    UserPublic,
)
from app.services.auth import AuthService
from app.services.user_store import UserStore

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"

router = APIRouter()
security = HTTPBearer(auto_error=False)


def get_user_store(db: Annotated[Session, Depends(get_db)]) -> UserStore:
    return UserStore(db)


def get_auth_service(
    store: Annotated[UserStore, Depends(get_user_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthService:
    return AuthService(store, settings)


def _cookie_options(settings: Settings) -> dict:
    return {
        "httponly": True,
        "secure": settings.COOKIE_SECURE,
        "samesite": settings.COOKIE_SAMESITE,
        "path": "/",
    }


def set_auth_cookies(
    response: Response, access_token: str, refresh_token: str, settings: Settings
) -> None:
    """Write both tokens as httpOnly cookies whose max_age matches the token lifetime."""
    options = _cookie_options(settings)
    response.set_cookie(
        REFRESH_TOKEN_COOKIE,
        value=refresh_token,
        max_age=int(settings.refresh_token_lifetime.total_seconds()),
        **options,
    )
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        value=access_token,
        max_age=int(settings.access_token_lifetime.total_seconds()),
        **options,
    )


def clear_auth_cookies(response: Response, settings: Settings) -> None:
    options = _cookie_options(settings)
    response.delete_cookie(REFRESH_TOKEN_COOKIE, **options)
    response.delete_cookie(ACCESS_TOKEN_COOKIE, **options)


def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    store: Annotated[UserStore, Depends(get_user_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CurrentUser:
    """
    Dependency: require a valid access token from the accessToken cookie or a
    Bearer header, resolve it to an existing user and attach it to request.state.user.
    Raises 401 if the token is missing, invalid, expired or names an unknown user.
    """
    token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if not token and credentials is not None:
        token = credentials.credentials
    if not token:
        raise AuthenticationError("Unauthorized request")
    try:
        payload = decode_access_token(token, settings)
    except jwt.PyJWTError:
        raise AuthenticationError("Invalid or expired access token")
    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise AuthenticationError("Invalid token payload")
    user = store.get_by_id(user_id)
    if user is None:
        raise AuthenticationError("Invalid access token")
    current = CurrentUser.model_validate(user)
    request.state.user = current
    return current


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
)
def register(
    body: RegisterRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> RegisterResponse:
    """Create an account. The response never includes the password hash or refresh token."""
    user = service.register(
        full_name=body.full_name,
        email=body.email,
        password=body.password,
        username=body.username,
    )
    return RegisterResponse(user=UserPublic.model_validate(user))


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    response: Response,
    service: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> LoginResponse:
    """
    Authenticate with email or username and password.
    Sets accessToken and refreshToken cookies; the access token is also returned in the body.
    """
    result = service.login(password=body.password, email=body.email, username=body.username)
    set_auth_cookies(response, result.access_token, result.refresh_token, settings)
    return LoginResponse(
        user=UserPublic.model_validate(result.user),
        access_token=result.access_token,
    )


@router.get("/logout", response_model=MessageResponse)
def logout(
    response: Response,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> MessageResponse:
    """Clear the stored refresh token and both auth cookies."""
    service.logout(current_user.id)
    clear_auth_cookies(response, settings)
    return MessageResponse(message="User logged out successfully")
