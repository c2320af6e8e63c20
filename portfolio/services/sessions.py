"""Server-side session store keyed by the HTTP-only session cookie."""

import logging
import secrets
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from portfolio.core.clock import as_utc, utcnow
from portfolio.models.session import AuthSession
from portfolio.models.user import User

if TYPE_CHECKING:
    from portfolio.core.config import Settings

logger = logging.getLogger(__name__)


def user_snapshot(user: User) -> dict[str, str]:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "role": user.role,
    }


def create_session(
    db: Session,
    user: User,
    token: str,
    settings: "Settings",
    now: datetime | None = None,
) -> AuthSession:
    """Persist a new session for user holding token; expires after SESSION_TTL_HOURS."""
    created = now or utcnow()
    row = AuthSession(
        id=secrets.token_urlsafe(32),
        user_id=user.id,
        token=token,
        user_snapshot=user_snapshot(user),
        created_at=created,
        expires_at=created + timedelta(hours=settings.SESSION_TTL_HOURS),
    )
    db.add(row)
    db.commit()
    return row


def get_session(
    db: Session,
    session_id: str | None,
    now: datetime | None = None,
) -> AuthSession | None:
    """Return the live session for session_id; an expired row is deleted and treated as absent."""
    if not session_id:
        return None
    row = db.query(AuthSession).filter(AuthSession.id == session_id).first()
    if row is None:
        return None
    if as_utc(row.expires_at) <= (now or utcnow()):
        db.delete(row)
        db.commit()
        return None
    return row


def destroy_session(db: Session, session_id: str | None) -> bool:
    """Delete the session if present. Returns False when there was nothing to delete."""
    if not session_id:
        return False
    deleted = (
        db.query(AuthSession)
        .filter(AuthSession.id == session_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted > 0


def replace_session_token(db: Session, row: AuthSession, user: User, token: str) -> None:
    row.token = token
    row.user_snapshot = user_snapshot(user)
    db.commit()


def destroy_user_sessions(db: Session, user_id: str, keep: str | None = None) -> int:
    """Delete every session of user_id except keep; returns the count removed."""
    query = db.query(AuthSession).filter(AuthSession.user_id == user_id)
    if keep:
        query = query.filter(AuthSession.id != keep)
    deleted = query.delete(synchronize_session=False)
    db.commit()
    if deleted:
        logger.info("Revoked %s other session(s) for user %s", deleted, user_id)
    return deleted
