"""ORM model for server-side login sessions keyed by the session cookie."""

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, func

from portfolio.models.base import Base, JSONType


class AuthSession(Base):
    """
    One row per signed-in browser.

    id is the opaque value of the HTTP-only session cookie. The row keeps the
    issued token and a minimal user snapshot (id, username, email, role).
    """

    __tablename__ = "auth_sessions"

    id = Column(String(64), primary_key=True)
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token = Column(Text, nullable=False)
    user_snapshot = Column(JSONType, nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
