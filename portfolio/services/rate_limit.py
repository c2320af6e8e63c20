"""Sliding-window throttle for register/login, backed by the auth_attempts table."""

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from portfolio.core.clock import utcnow
from portfolio.core.errors import RateLimited
from portfolio.models.rate_limit import AuthAttempt

if TYPE_CHECKING:
    from portfolio.core.config import Settings

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many authentication attempts. Please try again later."


def check_rate_limit(
    db: Session,
    source: str,
    endpoint: str,
    settings: "Settings",
    now: datetime | None = None,
) -> int:
    """
    Record one attempt from source, or raise RateLimited when the window is full.

    All register/login attempts from the same address share one budget of
    AUTH_RATE_LIMIT_MAX per AUTH_RATE_LIMIT_WINDOW_MINUTES. Rejected requests are
    not recorded, so the window drains on its own. Returns attempts remaining.
    """
    current = now or utcnow()
    window_start = current - timedelta(minutes=settings.AUTH_RATE_LIMIT_WINDOW_MINUTES)
    used = (
        db.query(AuthAttempt)
        .filter(AuthAttempt.source == source, AuthAttempt.attempted_at > window_start)
        .count()
    )
    if used >= settings.AUTH_RATE_LIMIT_MAX:
        logger.warning(
            "Auth rate limit hit",
            extra={"source": source, "endpoint": endpoint, "attempts": used},
        )
        raise RateLimited(RATE_LIMIT_MESSAGE)
    db.add(AuthAttempt(source=source, endpoint=endpoint, attempted_at=current))
    db.commit()
    return settings.AUTH_RATE_LIMIT_MAX - used - 1
