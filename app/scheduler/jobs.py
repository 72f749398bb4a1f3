"""
app/scheduler/jobs.py

APScheduler-based batch scheduler for the periodic KPI workbook sync.

Schedule (all times UTC)
--------------------------
  current_month_kpi_sync: daily at KPI_SYNC_CRON_HOUR:KPI_SYNC_CRON_MINUTE
                          (02:00 by default)

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on process boot; shut it down gracefully on exit
(see ``scripts/run_scheduler.py``).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import SyncSettings, get_sync_settings
from app.services.kpi_sync_service import KpiSyncService, get_kpi_sync_service

logger = logging.getLogger(__name__)

CURRENT_MONTH_JOB_ID = "current_month_kpi_sync"


# ---------------------------------------------------------------------------
# Job: current month KPI sync
# ---------------------------------------------------------------------------


def run_current_month_sync(service: KpiSyncService | None = None) -> None:
    """
    Rebuild the KPI reports of the current month.

    Failures are logged; the scheduler keeps running.
    """
    logger.info("Scheduler: current_month_kpi_sync starting")
    now = datetime.now(tz=timezone.utc)
    try:
        sync_service = service or get_kpi_sync_service()
        summary = sync_service.sync_current_month(now=now)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Scheduler: current_month_kpi_sync failed: %s", exc)
        return

    logger.info(
        "Scheduler: current_month_kpi_sync complete scope=%s reports_persisted=%s "
        "files_failed=%s incomplete_releases=%s",
        summary.scope,
        summary.reports_persisted,
        summary.files_failed,
        len(summary.incomplete_releases),
    )


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def build_scheduler(settings: SyncSettings | None = None) -> BackgroundScheduler:
    """
    Build and register the periodic sync job.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.
    """
    sync_settings = settings or get_sync_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        run_current_month_sync,
        trigger="cron",
        hour=sync_settings.cron_hour,
        minute=sync_settings.cron_minute,
        id=CURRENT_MONTH_JOB_ID,
        name="Daily current-month KPI sync",
        replace_existing=True,
        misfire_grace_time=3600,
        max_instances=1,
        coalesce=True,
    )

    return scheduler
