"""Pydantic request/response schemas."""

from portfolio.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    CurrentUser,
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    UserSummary,
)
from portfolio.schemas.contact import (
    ContactRequest,
    ContactResponse,
    ContactSubmission,
    NotificationStatuses,
)
from portfolio.schemas.health import HealthResponse

__all__ = [
    "AuthResponse",
    "ChangePasswordRequest",
    "ContactRequest",
    "ContactResponse",
    "ContactSubmission",
    "CurrentUser",
    "HealthResponse",
    "LoginRequest",
    "NotificationStatuses",
    "ProfileUpdateRequest",
    "RegisterRequest",
    "UserSummary",
]
