"""SQLAlchemy ORM models."""

from portfolio.models.base import Base
from portfolio.models.rate_limit import AuthAttempt
from portfolio.models.session import AuthSession
from portfolio.models.user import User

__all__ = ["AuthAttempt", "AuthSession", "Base", "User"]
