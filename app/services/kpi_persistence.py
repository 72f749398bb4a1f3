"""
app/services/kpi_persistence.py

SQLAlchemy-backed storage of completed release KPIs.

Each operation runs in its own session and transaction, so it can be
called from any sync worker thread.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.repositories.kpi_report_repository import KpiReportRepository
from db.repositories.project_repository import ProjectRepository
from db.repositories.release_repository import ReleaseRepository
from db.repositories.sync_metadata_repository import SyncMetadataRepository
from ingestion.kpi_builder import KpiRecord
from ingestion.types import ReleaseKey

logger = logging.getLogger(__name__)


class KpiPersistenceError(RuntimeError):
    """
    Raised when KPI data cannot be persisted.
    """


class KpiPersistence(Protocol):
    def store_release_kpi(self, *, key: ReleaseKey, month: int, record: KpiRecord) -> int:
        ...

    def release_ids_for_period(self, *, year: int, month: int) -> list[int]:
        ...

    def delete_releases(self, release_ids: Sequence[int]) -> int:
        ...

    def save_last_sync_time(self, timestamp: datetime) -> None:
        ...


class SqlAlchemyKpiPersistence:
    def __init__(self, session_factory: Callable[[], Session] | None = None) -> None:
        if session_factory is None:
            from db.session import SessionLocal

            session_factory = SessionLocal
        self._session_factory = session_factory

    def store_release_kpi(self, *, key: ReleaseKey, month: int, record: KpiRecord) -> int:
        """
        Find or create the project, create the release and insert its KPI
        report in one transaction. Returns the new release id.
        """
        with self._session_factory() as db:
            try:
                project = ProjectRepository(db).find_or_create(key.project)
                release = ReleaseRepository(db).create_release(
                    project_id=project.project_id,
                    year=int(key.year),
                    month=month,
                    release_phase=None,
                    release_name=key.release,
                )
                KpiReportRepository(db).create_kpi_report(
                    release_id=release.release_id,
                    record=record,
                )
                db.commit()
                return release.release_id
            except SQLAlchemyError as exc:
                db.rollback()
                raise KpiPersistenceError(f"Failed to persist KPI report for {key}.") from exc

    def release_ids_for_period(self, *, year: int, month: int) -> list[int]:
        with self._session_factory() as db:
            return ReleaseRepository(db).release_ids_for_period(year=year, month=month)

    def delete_releases(self, release_ids: Sequence[int]) -> int:
        """
        Delete the given releases together with their KPI reports.
        """
        if not release_ids:
            return 0
        with self._session_factory() as db:
            try:
                KpiReportRepository(db).delete_reports(release_ids=release_ids)
                deleted = ReleaseRepository(db).delete_releases(release_ids=release_ids)
                db.commit()
                return deleted
            except SQLAlchemyError as exc:
                db.rollback()
                raise KpiPersistenceError("Failed to delete previous releases.") from exc

    def save_last_sync_time(self, timestamp: datetime) -> None:
        with self._session_factory() as db:
            try:
                record = SyncMetadataRepository(db).save_last_sync_time(timestamp)
                db.commit()
                logger.info("Last sync time saved value=%s", record.value)
            except SQLAlchemyError as exc:
                db.rollback()
                raise KpiPersistenceError("Failed to save last sync time.") from exc
