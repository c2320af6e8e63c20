"""
Auth service: registration, login with account lockout, logout, profile and password changes.

Lockout state per account (the only place it is implemented):

- Active --wrong password--> Active, login_attempts + 1; reaching
  LOCKOUT_MAX_ATTEMPTS sets lock_until = now + LOCKOUT_DURATION_HOURS.
- Locked(until) --any attempt before until--> rejected with AccountLocked,
  password not checked, counter untouched.
- Locked(until) --attempt at/after until--> counter and lock cleared, then
  evaluated as a fresh attempt.
- any --correct password--> Active, counter 0, lock cleared, last_login = now.

Every function takes the request's DB session and settings explicitly.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portfolio.core.clock import as_utc, utcnow
from portfolio.core.errors import (
    AccountLocked,
    InvalidCredentials,
    NotFound,
    ServerError,
    ValidationError,
)
from portfolio.core.security import create_access_token, hash_password, verify_password
from portfolio.models.session import AuthSession
from portfolio.models.user import User
from portfolio.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
)
from portfolio.services import credentials, sessions

if TYPE_CHECKING:
    from portfolio.core.config import Settings

logger = logging.getLogger(__name__)

PASSWORD_MIN_LEN = 6
PASSWORD_MAX_LEN = 128
MIN_PASSWORD_STRENGTH = 2

# One point per satisfied check: length >= 8, lowercase, uppercase, digit, special char.
STRENGTH_CHECKS = (
    re.compile(r".{8,}"),
    re.compile(r"[a-z]"),
    re.compile(r"[A-Z]"),
    re.compile(r"[0-9]"),
    re.compile(r"[^A-Za-z0-9]"),
)

# Shared by unknown-email and wrong-password so responses cannot be told apart.
INVALID_LOGIN_MESSAGE = "Invalid email or password"
LOCKED_MESSAGE = (
    "Account is temporarily locked due to too many failed login attempts. "
    "Please try again later."
)


@dataclass
class AuthResult:
    """Outcome of register/login/password change: the account, its token and session id."""

    user: User
    token: str
    session_id: str | None = None


def password_strength(password: str) -> int:
    return sum(1 for check in STRENGTH_CHECKS if check.search(password))


def _validate_new_password(
    password: str,
    confirm: str,
    field: str = "password",
    confirm_field: str = "confirmPassword",
    mismatch_message: str = "Passwords do not match",
) -> None:
    if password != confirm:
        raise ValidationError(mismatch_message, field=confirm_field)
    if len(password) < PASSWORD_MIN_LEN:
        raise ValidationError(
            f"Password must be at least {PASSWORD_MIN_LEN} characters long", field=field
        )
    if len(password) > PASSWORD_MAX_LEN:
        raise ValidationError(
            f"Password cannot exceed {PASSWORD_MAX_LEN} characters", field=field
        )


def token_claims(user: User) -> dict[str, object]:
    return {
        "sub": user.id,
        "username": user.username,
        "email": user.email,
        "role": user.role,
        "ver": user.token_version or 0,
    }


def _start_session(
    db: Session,
    settings: "Settings",
    user: User,
    previous_session_id: str | None,
    now: datetime,
) -> AuthResult:
    """Issue a token and open a fresh session, dropping any session the client already held."""
    token = create_access_token(token_claims(user), settings, now=now)
    try:
        sessions.destroy_session(db, previous_session_id)
        row = sessions.create_session(db, user, token, settings, now=now)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Could not create session for user %s", user.id)
        raise ServerError("Could not start a session. Please try again.") from e
    return AuthResult(user=user, token=token, session_id=row.id)


def register(
    db: Session,
    settings: "Settings",
    data: RegisterRequest,
    previous_session_id: str | None = None,
    now: datetime | None = None,
) -> AuthResult:
    """
    Create an account, sign it in and return the user, token and new session id.

    Raises ValidationError (missing/mismatched/short/weak input, bad username or
    email) or ConflictError (field='email' or 'username').
    """
    current = now or utcnow()
    if not (data.username and data.email and data.password and data.confirm_password):
        raise ValidationError("All fields are required", field="all")
    _validate_new_password(data.password, data.confirm_password)
    if password_strength(data.password) < MIN_PASSWORD_STRENGTH:
        raise ValidationError(
            "Password is too weak. Please include uppercase, lowercase, numbers, "
            "and special characters.",
            field="password",
        )
    username = credentials.validate_username(data.username)
    email = credentials.validate_email(data.email)

    password_hash = hash_password(data.password, rounds=settings.BCRYPT_ROUNDS)
    user = credentials.create_user(db, username, email, password_hash)
    logger.info("User registered", extra={"user_id": user.id, "username": user.username})
    return _start_session(db, settings, user, previous_session_id, current)


def _is_locked(user: User, now: datetime) -> bool:
    lock_until = as_utc(user.lock_until)
    return lock_until is not None and lock_until > now


def _record_failed_attempt(db: Session, user: User, settings: "Settings", now: datetime) -> None:
    # Increment in SQL so concurrent failures are all counted.
    db.query(User).filter(User.id == user.id).update(
        {User.login_attempts: User.login_attempts + 1},
        synchronize_session=False,
    )
    db.commit()
    db.refresh(user)
    if user.login_attempts >= settings.LOCKOUT_MAX_ATTEMPTS:
        user.lock_until = now + timedelta(hours=settings.LOCKOUT_DURATION_HOURS)
        db.commit()
        logger.warning(
            "Account locked after repeated failed logins",
            extra={"user_id": user.id, "login_attempts": user.login_attempts},
        )


def login(
    db: Session,
    settings: "Settings",
    data: LoginRequest,
    previous_session_id: str | None = None,
    now: datetime | None = None,
) -> AuthResult:
    """
    Authenticate by email and password and open a session.

    Raises ValidationError (missing fields), InvalidCredentials (unknown email or
    wrong password, same message for both) or AccountLocked.
    """
    current = now or utcnow()
    if not data.email or not data.password:
        raise ValidationError("Email and password are required", field="all")

    user = credentials.get_by_email(db, data.email)
    if user is None:
        raise InvalidCredentials(INVALID_LOGIN_MESSAGE)
    if _is_locked(user, current):
        raise AccountLocked(LOCKED_MESSAGE)
    if user.lock_until is not None:
        # Lock window elapsed: start counting from zero again.
        user.login_attempts = 0
        user.lock_until = None
        db.commit()

    if not verify_password(data.password, user.password_hash):
        _record_failed_attempt(db, user, settings, current)
        logger.info("Login failed", extra={"user_id": user.id})
        raise InvalidCredentials(INVALID_LOGIN_MESSAGE)

    if user.login_attempts or user.lock_until is not None:
        user.login_attempts = 0
        user.lock_until = None
    user.last_login = current
    db.commit()
    db.refresh(user)
    logger.info("Login succeeded", extra={"user_id": user.id})
    return _start_session(db, settings, user, previous_session_id, current)


def logout(db: Session, session_id: str | None) -> None:
    """Destroy the session. Calling it without a live session is not an error."""
    try:
        sessions.destroy_session(db, session_id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Session destroy failed")
        raise ServerError("Could not log out properly") from e


def get_profile(db: Session, user_id: str) -> User:
    user = credentials.get_by_id(db, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def update_profile(db: Session, user_id: str, data: ProfileUpdateRequest) -> User:
    """Rename (uniqueness re-checked excluding self) and shallow-merge preferences."""
    user = get_profile(db, user_id)
    if data.username is not None and data.username.strip() != user.username:
        username = credentials.validate_username(data.username)
        credentials.rename_user(db, user, username)
    if data.preferences is not None:
        changes = data.preferences.model_dump(exclude_none=True)
        user.preferences = {**(user.preferences or {}), **changes}
    db.commit()
    db.refresh(user)
    return user


def change_password(
    db: Session,
    settings: "Settings",
    user_id: str,
    data: ChangePasswordRequest,
    current_session: AuthSession | None = None,
    now: datetime | None = None,
) -> AuthResult:
    """
    Replace the password after checking the current one.

    Bumps token_version so previously issued tokens stop verifying, deletes every
    other session of the user and re-issues the token for the caller's session.
    """
    current = now or utcnow()
    if not (data.current_password and data.new_password and data.confirm_new_password):
        raise ValidationError("All password fields are required", field="all")
    _validate_new_password(
        data.new_password,
        data.confirm_new_password,
        field="newPassword",
        confirm_field="confirmNewPassword",
        mismatch_message="New passwords do not match",
    )
    user = get_profile(db, user_id)
    if not verify_password(data.current_password, user.password_hash):
        raise InvalidCredentials("Current password is incorrect", field="currentPassword")

    user.password_hash = hash_password(data.new_password, rounds=settings.BCRYPT_ROUNDS)
    user.token_version = (user.token_version or 0) + 1
    db.commit()
    db.refresh(user)

    token = create_access_token(token_claims(user), settings, now=current)
    keep = current_session.id if current_session is not None else None
    sessions.destroy_user_sessions(db, user.id, keep=keep)
    if current_session is not None:
        sessions.replace_session_token(db, current_session, user, token)
    logger.info("Password changed", extra={"user_id": user.id})
    return AuthResult(user=user, token=token, session_id=keep)
