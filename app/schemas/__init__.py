"""Pydantic request/response schemas."""

from app.schemas.auth import (
    ApiResponse,
    CurrentUser,
    LoginData,
    LoginRequest,
    RefreshRequest,
    TokenPair,
)
from app.schemas.health import HealthResponse

__all__ = [
    "ApiResponse",
    "CurrentUser",
    "HealthResponse",
    "LoginData",
    "LoginRequest",
    "RefreshRequest",
    "TokenPair",
]
