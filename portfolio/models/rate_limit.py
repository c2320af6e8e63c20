"""ORM model for throttled authentication attempts (sliding window source)."""

from sqlalchemy import Column, DateTime, Index, Integer, String

from portfolio.models.base import Base


class AuthAttempt(Base):
    """One register/login request from a client address."""

    __tablename__ = "auth_attempts"
    __table_args__ = (Index("ix_auth_attempts_source_time", "source", "attempted_at"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    source = Column(String(255), nullable=False)
    endpoint = Column(String(32), nullable=False)
    attempted_at = Column(DateTime(timezone=True), nullable=False)
