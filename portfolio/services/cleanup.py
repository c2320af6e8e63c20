"""Housekeeping: purge expired sessions and stale rate-limit attempts."""

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from portfolio.core.clock import utcnow
from portfolio.models import AuthAttempt, AuthSession

if TYPE_CHECKING:
    from portfolio.core.config import Settings

logger = logging.getLogger(__name__)


def run_cleanup(
    session: Session,
    settings: "Settings",
    now: datetime | None = None,
) -> tuple[int, int]:
    """
    Delete sessions past expires_at and auth attempts older than ATTEMPT_RETENTION_HOURS.

    Returns (sessions_deleted, attempts_deleted). Idempotent: safe to run repeatedly.
    """
    current = now or utcnow()
    sessions_deleted = (
        session.query(AuthSession)
        .filter(AuthSession.expires_at <= current)
        .delete(synchronize_session=False)
    )
    # Never purge inside the live rate-limit window.
    keep_hours = max(
        settings.ATTEMPT_RETENTION_HOURS,
        settings.AUTH_RATE_LIMIT_WINDOW_MINUTES / 60,
    )
    cutoff = current - timedelta(hours=keep_hours)
    attempts_deleted = (
        session.query(AuthAttempt)
        .filter(AuthAttempt.attempted_at < cutoff)
        .delete(synchronize_session=False)
    )
    session.commit()

    if sessions_deleted or attempts_deleted:
        logger.info(
            "Cleanup run: cutoff=%s, sessions_deleted=%s, attempts_deleted=%s",
            cutoff.isoformat(),
            sessions_deleted,
            attempts_deleted,
        )
    return (sessions_deleted, attempts_deleted)
