"""
db/repositories/kpi_report_repository.py

Persistence layer for KpiReport rows.

All methods are transaction-safe. The caller controls commit/rollback;
this repository never commits on its own.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from db.models.kpi_report import KpiReport
from ingestion.kpi_builder import KpiRecord

logger = logging.getLogger(__name__)


class KpiReportRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_kpi_report(self, *, release_id: int, record: KpiRecord) -> KpiReport:
        """
        Insert one report row holding every field of *record*.
        """
        report = KpiReport(release_id=release_id, **record.to_row())
        self._session.add(report)
        self._session.flush()
        self._session.refresh(report)
        return report

    def list_reports(self) -> list[KpiReport]:
        stmt = select(KpiReport).order_by(KpiReport.release_id)
        return list(self._session.scalars(stmt).all())

    def delete_reports(self, *, release_ids: Sequence[int]) -> int:
        """
        Delete the reports of the given releases. An empty id list deletes
        nothing.
        """
        if not release_ids:
            return 0
        result = self._session.execute(
            delete(KpiReport).where(KpiReport.release_id.in_(list(release_ids)))
        )
        deleted = result.rowcount or 0
        logger.info("KPI report deletion complete. %s record(s) removed", deleted)
        return deleted
