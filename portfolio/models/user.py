"""ORM model for portfolio accounts (auth, lockout and RBAC)."""

import uuid

from sqlalchemy import Column, DateTime, Integer, String, func

from portfolio.models.base import Base, JSONType

DEFAULT_PREFERENCES = {"theme": "dark", "notifications": True}


def _new_user_id() -> str:
    return str(uuid.uuid4())


def _default_preferences() -> dict:
    return dict(DEFAULT_PREFERENCES)


class User(Base):
    """
    User account for session/JWT authentication and role-based access control.

    role: 'user' or 'admin'. email is stored lowercased.
    lock_until: while in the future, login is refused without checking the password.
    token_version: bumped on password change; tokens carrying an older value are rejected.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_user_id)
    username = Column(String(30), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default="user")
    login_attempts = Column(Integer, nullable=False, default=0)
    lock_until = Column(DateTime(timezone=True), nullable=True)
    last_login = Column(DateTime(timezone=True), nullable=True)
    preferences = Column(JSONType, nullable=False, default=_default_preferences)
    token_version = Column(Integer, nullable=False, default=0)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
