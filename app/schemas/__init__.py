"""Pydantic request/response schemas."""

from app.schemas.auth import (
    CurrentUser,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    UserPublic,
)
from app.schemas.health import HealthResponse

__all__ = [
    "CurrentUser",
    "HealthResponse",
    "LoginRequest",
    "LoginResponse",
    "MessageResponse",
    "RegisterRequest",
    "RegisterResponse",
    "UserPublic",
]
