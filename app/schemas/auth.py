"""Request/response schemas for auth endpoints.

JSON field names are camelCase (fullName, accessToken); Python attributes are snake_case.
Request fields are optional at the schema level so that missing or blank values
are reported by the auth service as a 400 rather than a schema error.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class RegisterRequest(BaseModel):
    """New account details."""

    model_config = ConfigDict(populate_by_name=True)

    full_name: str | None = Field(default=None, alias="fullName", description="Full name")
    email: str | None = Field(default=None, description="Email address")
    password: str | None = Field(default=None, description="Password")
    username: str | None = Field(default=None, description="Username")


class LoginRequest(BaseModel):
    """Credentials for login: email or username, plus password."""

    email: str | None = Field(default=None, description="Email (takes precedence over username)")
    username: str | None = Field(default=None, description="Username")
    password: str | None = Field(default=None, description="Password")


class UserPublic(BaseModel):
    """Sanitized user: no password hash, no refresh token."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    username: str
    email: str
    full_name: str = Field(alias="fullName")
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")


class RegisterResponse(BaseModel):
    """Response for POST /register."""

    message: str = "User registered successfully"
    user: UserPublic


class LoginResponse(BaseModel):
    """Response for POST /login; the access token is repeated here for non-cookie clients."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = "User logged in successfully"
    user: UserPublic
    access_token: str = Field(alias="accessToken", description="JWT access token")


class MessageResponse(BaseModel):
    """Plain message payload (logout)."""

    message: str


class CurrentUser(BaseModel):
    """Authenticated user resolved by the session guard."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
