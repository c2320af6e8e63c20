"""Auth routes and access dependencies (get_current_user, require_role, auth_rate_limit)."""

from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from portfolio.core.config import Settings, get_settings
from portfolio.core.database import get_db
from portfolio.core.errors import AppError
from portfolio.models.user import User
from portfolio.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    CurrentUser,
    LoginRequest,
    MessageResponse,
    PasswordChangedResponse,
    ProfileUpdateRequest,
    RegisterRequest,
    SessionStatusResponse,
    UserListItem,
    UserResponse,
    UsersListResponse,
    UserSummary,
    VerifyResponse,
)
from portfolio.services import access, auth
from portfolio.services.rate_limit import check_rate_limit

router = APIRouter()

SettingsDep = Annotated[Settings, Depends(get_settings)]
DbDep = Annotated[Session, Depends(get_db)]


def _session_id(request: Request, settings: Settings) -> str | None:
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


def _set_session_cookie(response: Response, settings: Settings, session_id: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=session_id,
        max_age=settings.SESSION_TTL_HOURS * 3600,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )


def _client_address(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def auth_rate_limit(endpoint: str) -> Callable[..., None]:
    """Dependency factory: throttle register/login per client address."""

    def dependency(request: Request, db: DbDep, settings: SettingsDep) -> None:
        check_rate_limit(db, _client_address(request), endpoint, settings)

    return dependency


def get_current_user(request: Request, db: DbDep, settings: SettingsDep) -> CurrentUser:
    """
    Dependency: resolve the caller from session, Bearer header or 'token' cookie (in that order).

    Raises 401 when no token is present and 403 when it fails verification.
    The matched server-side session, if any, is kept on request.state.auth_session.
    """
    found = access.find_token(
        db,
        session_id=_session_id(request, settings),
        authorization=request.headers.get("authorization"),
        cookie_token=request.cookies.get("token"),
    )
    identity = access.authenticate(db, settings, found)
    request.state.auth_session = found.session if found else None
    return identity


CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]


def require_role(role: str) -> Callable[..., CurrentUser]:
    """Dependency factory: require an authenticated user with the given role (403 otherwise)."""

    def dependency(current_user: CurrentUserDep) -> CurrentUser:
        return access.check_role(current_user, role)

    return dependency


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(auth_rate_limit("register"))],
)
def register(
    body: RegisterRequest,
    request: Request,
    response: Response,
    db: DbDep,
    settings: SettingsDep,
) -> AuthResponse:
    """Create an account, start a session cookie and return the token and user."""
    result = auth.register(db, settings, body, previous_session_id=_session_id(request, settings))
    _set_session_cookie(response, settings, result.session_id)
    return AuthResponse(
        message="User registered successfully",
        token=result.token,
        user=UserSummary.from_user(result.user),
    )


@router.post(
    "/login",
    response_model=AuthResponse,
    dependencies=[Depends(auth_rate_limit("login"))],
)
def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    db: DbDep,
    settings: SettingsDep,
) -> AuthResponse:
    """
    Authenticate with email and password; returns a JWT and sets the session cookie.
    The token may also be sent as: Authorization: Bearer <token>
    """
    result = auth.login(db, settings, body, previous_session_id=_session_id(request, settings))
    _set_session_cookie(response, settings, result.session_id)
    return AuthResponse(
        message="Login successful",
        token=result.token,
        user=UserSummary.from_user(result.user),
    )


@router.post("/logout", response_model=MessageResponse)
def logout(
    request: Request,
    response: Response,
    db: DbDep,
    settings: SettingsDep,
) -> MessageResponse:
    """Destroy the server-side session and clear the cookie. Safe to call twice."""
    auth.logout(db, _session_id(request, settings))
    response.delete_cookie(settings.SESSION_COOKIE_NAME, httponly=True, samesite="lax")
    return MessageResponse(message="Logout successful", redirect=settings.SIGNIN_REDIRECT)


@router.get("/verify", response_model=VerifyResponse)
def verify(current_user: CurrentUserDep) -> VerifyResponse:
    return VerifyResponse(user=current_user)


@router.get("/status", response_model=SessionStatusResponse)
def session_status(
    request: Request,
    db: DbDep,
    settings: SettingsDep,
) -> SessionStatusResponse:
    """Report whether the caller is signed in and where the browser should go next."""
    try:
        identity = get_current_user(request, db, settings)
    except AppError:
        return SessionStatusResponse(authenticated=False, redirect=settings.SIGNIN_REDIRECT)
    return SessionStatusResponse(
        authenticated=True,
        user=identity,
        redirect=settings.HOME_REDIRECT,
    )


@router.get("/me", response_model=UserResponse)
def me(current_user: CurrentUserDep, db: DbDep) -> UserResponse:
    user = auth.get_profile(db, current_user.id)
    return UserResponse(user=UserSummary.from_user(user))


@router.put("/profile", response_model=UserResponse)
def update_profile(
    body: ProfileUpdateRequest,
    current_user: CurrentUserDep,
    db: DbDep,
) -> UserResponse:
    """Change username (must stay unique) and/or merge preferences."""
    user = auth.update_profile(db, current_user.id, body)
    return UserResponse(
        message="Profile updated successfully",
        user=UserSummary.from_user(user),
    )


@router.put("/change-password", response_model=PasswordChangedResponse)
def change_password(
    body: ChangePasswordRequest,
    request: Request,
    current_user: CurrentUserDep,
    db: DbDep,
    settings: SettingsDep,
) -> PasswordChangedResponse:
    """
    Replace the password. Other sessions and previously issued tokens stop working;
    the caller's session keeps going with the returned token.
    """
    result = auth.change_password(
        db,
        settings,
        current_user.id,
        body,
        current_session=getattr(request.state, "auth_session", None),
    )
    return PasswordChangedResponse(message="Password changed successfully", token=result.token)


@router.get("/users", response_model=UsersListResponse)
def list_users(
    _admin: Annotated[CurrentUser, Depends(require_role("admin"))],
    db: DbDep,
) -> UsersListResponse:
    """List all users (admin only)."""
    users = db.query(User).order_by(User.created_at, User.username).all()
    return UsersListResponse(users=[UserListItem.model_validate(u) for u in users])
