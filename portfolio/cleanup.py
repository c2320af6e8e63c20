"""
CLI entrypoint for session/rate-limit housekeeping. Run from cron, e.g.:

  python -m portfolio.cleanup

Or hourly: 0 * * * * cd /path/to/portfolio-gate && .venv/bin/python -m portfolio.cleanup
"""

import logging
import sys

from portfolio.core.config import get_settings
from portfolio.core.database import SessionLocal
from portfolio.services.cleanup import run_cleanup

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Purge expired sessions and old auth attempts."""
    settings = get_settings()
    db = SessionLocal()
    try:
        sessions_deleted, attempts_deleted = run_cleanup(db, settings)
        logger.info(
            "Cleanup completed: sessions_deleted=%s attempts_deleted=%s",
            sessions_deleted,
            attempts_deleted,
        )
        return 0
    except Exception as e:
        logger.exception("Cleanup job failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
