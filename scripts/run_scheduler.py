"""
Run the KPI sync scheduler in the foreground until interrupted.
"""

from __future__ import annotations

import logging
import time

from app.config import get_sync_settings
from app.logging_utils import configure_logging
from app.scheduler.jobs import build_scheduler

logger = logging.getLogger(__name__)


def main() -> int:
    configure_logging()
    settings = get_sync_settings()
    if not settings.scheduler_enabled:
        logger.info("Scheduler disabled by KPI_SYNC_SCHEDULER_ENABLED")
        return 0

    scheduler = build_scheduler(settings)
    scheduler.start()
    logger.info(
        "Scheduler started cron=%02d:%02d UTC",
        settings.cron_hour,
        settings.cron_minute,
    )
    try:
        while True:
            time.sleep(60)
    except (KeyboardInterrupt, SystemExit):
        logger.info("Scheduler stopping")
    finally:
        scheduler.shutdown(wait=True)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
