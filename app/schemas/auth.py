"""Request/response schemas for user and session endpoints."""

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from app.core.security import PASSWORD_MAX_LEN, USERNAME_MAX_LEN

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope shared by every endpoint."""

    status_code: int = Field(..., description="HTTP status code")
    data: T | None = Field(default=None, description="Response payload")
    message: str = Field(default="Success", description="Human-readable outcome")
    success: bool = Field(default=True, description="True for status codes below 400")

    @classmethod
    def of(cls, status_code: int, data: T | None, message: str = "Success") -> "ApiResponse[T]":
        return cls(status_code=status_code, data=data, message=message, success=status_code < 400)


class LoginRequest(BaseModel):
    """Credentials for login: password plus username or email (at least one)."""

    username: str | None = Field(default=None, max_length=USERNAME_MAX_LEN, description="Username")
    email: str | None = Field(default=None, max_length=320, description="Email")
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN, description="Password")


class RefreshRequest(BaseModel):
    """Refresh token in the body, for clients that do not send cookies."""

    refresh_token: str | None = Field(default=None, description="Current refresh token")


class CurrentUser(BaseModel):
    """Authenticated user without credential fields, for dependency injection and responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    full_name: str
    avatar: str
    cover_image: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TokenPair(BaseModel):
    """Access and refresh tokens issued together."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")


class LoginData(TokenPair):
    """Login payload: the public user plus both tokens."""

    user: CurrentUser
