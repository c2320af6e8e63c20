"""Request/response schemas for auth endpoints.

Wire format uses the camelCase keys the browser client sends and expects
(confirmPassword, lastLogin, ...); Python code uses snake_case field names.
Request fields are optional at the schema level so the auth service can
report which field is missing with its own messages.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from portfolio.core.clock import as_utc

if TYPE_CHECKING:
    from portfolio.models.user import User


class RegisterRequest(BaseModel):
    """Sign-up form."""

    model_config = ConfigDict(populate_by_name=True)

    username: str | None = None
    email: str | None = None
    password: str | None = None
    confirm_password: str | None = Field(default=None, alias="confirmPassword")


class LoginRequest(BaseModel):
    """Credentials for login."""

    email: str | None = None
    password: str | None = None


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: str | None = Field(default=None, alias="currentPassword")
    new_password: str | None = Field(default=None, alias="newPassword")
    confirm_new_password: str | None = Field(default=None, alias="confirmNewPassword")


class PreferencesUpdate(BaseModel):
    """Owner-editable preferences; unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid")

    theme: Literal["light", "dark"] | None = None
    notifications: bool | None = None


class ProfileUpdateRequest(BaseModel):
    username: str | None = None
    preferences: PreferencesUpdate | None = None


class UserSummary(BaseModel):
    """User as returned to clients. Never includes the password hash or lockout fields."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    username: str
    email: str
    role: str
    last_login: datetime | None = Field(default=None, alias="lastLogin")
    preferences: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    @classmethod
    def from_user(cls, user: "User") -> "UserSummary":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            role=user.role,
            last_login=as_utc(user.last_login),
            preferences=dict(user.preferences or {}),
            created_at=as_utc(user.created_at),
            updated_at=as_utc(user.updated_at),
        )


class AuthResponse(BaseModel):
    """Register/login result. The token is also usable as a Bearer credential."""

    message: str
    token: str
    user: UserSummary


class UserResponse(BaseModel):
    message: str | None = None
    user: UserSummary


class CurrentUser(BaseModel):
    """Authenticated identity attached to a request (token claims)."""

    id: str
    username: str
    email: str
    role: str


class VerifyResponse(BaseModel):
    message: str = "Token is valid"
    user: CurrentUser


class SessionStatusResponse(BaseModel):
    """Whether the browser holds a live session; drives sign-in page redirects."""

    authenticated: bool
    user: CurrentUser | None = None
    redirect: str


class MessageResponse(BaseModel):
    message: str
    redirect: str | None = None


class PasswordChangedResponse(BaseModel):
    message: str
    token: str


class UserListItem(BaseModel):
    """User entry for admin list (no password)."""

    id: str
    username: str
    email: str
    role: str

    class Config:
        from_attributes = True


class UsersListResponse(BaseModel):
    """Response for GET /auth/users (admin only)."""

    users: list[UserListItem]
