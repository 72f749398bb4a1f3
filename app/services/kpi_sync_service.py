"""
app/services/kpi_sync_service.py

KPI workbook sync orchestrator.

Wires discovery → readers → ReleaseAssembler → KpiBuilder → persistence
into one run.  Each layer keeps its own responsibility:

    FileDiscovery      – month folders and release workbooks (Graph or local)
    WorkbookReader     – raw metric maps per file type
    ReleaseAssembler   – per-release accumulation and exactly-once completion
    KpiBuilder         – typed KPI record from a complete accumulator
    KpiPersistence     – project / release / report rows

Run scopes
----------
sync_all()                 – every year/month under the root folder
sync_month(year, month)    – one month; previous rows for that month are
                             replaced after the traversal finishes
sync_current_month(now)    – sync_month for the month containing ``now``

Failure contract
----------------
- One file failing (read error, bad folder path, unknown type) is logged and
  counted; the run continues with the remaining files.
- A month task failing (e.g. listing children) is logged and counted; the
  other month tasks continue.
- Persistence failure for one release is logged and counted.
- Errors that stop the whole run (root listing, last-sync bookkeeping for a
  month replace) propagate to the caller.

Concurrency
-----------
Month folders are the unit of parallel work and run on a bounded thread
pool.  Files inside one month folder are processed one after another,
Estimation files first, so repeated Estimation efforts are summed before
a release completes.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from app.config import get_graph_settings, get_sync_settings
from app.logging_utils import log_event
from app.services.kpi_persistence import (
    KpiPersistence,
    KpiPersistenceError,
    SqlAlchemyKpiPersistence,
)
from app.services.task_runner import BoundedTaskRunner
from ingestion.assembler import ReleaseAssembler
from ingestion.classification import classify_file, month_name, month_number, resolve_release_key
from ingestion.errors import FolderHierarchyError
from ingestion.kpi_builder import KpiBuilder
from ingestion.normalizer import NormalizationWarning
from ingestion.readers import (
    DLSReader,
    EstimationReader,
    TestReportReader,
    WorkbookReader,
    is_readable_workbook_name,
)
from ingestion.types import (
    DiscoveredFile,
    FileDiscovery,
    FileType,
    MonthFolder,
    ReleaseAccumulator,
    ReleaseKey,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result dataclass
# ---------------------------------------------------------------------------


@dataclass
class SyncSummary:
    """
    Counters and outcomes of one sync run.
    """

    scope: str
    started_at: datetime
    finished_at: datetime | None = None
    month_folders: int = 0
    month_folders_failed: int = 0
    files_seen: int = 0
    files_read: int = 0
    files_skipped: int = 0
    files_failed: int = 0
    releases_completed: int = 0
    reports_persisted: int = 0
    persistence_failures: int = 0
    releases_replaced: int = 0
    incomplete_releases: list[str] = field(default_factory=list)
    normalization_warnings: list[NormalizationWarning] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.month_folders_failed or self.files_failed or self.persistence_failures)

    def to_dict(self) -> dict[str, Any]:
        return {
            "scope": self.scope,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "month_folders": self.month_folders,
            "month_folders_failed": self.month_folders_failed,
            "files_seen": self.files_seen,
            "files_read": self.files_read,
            "files_skipped": self.files_skipped,
            "files_failed": self.files_failed,
            "releases_completed": self.releases_completed,
            "reports_persisted": self.reports_persisted,
            "persistence_failures": self.persistence_failures,
            "releases_replaced": self.releases_replaced,
            "incomplete_releases": list(self.incomplete_releases),
            "normalization_warnings": len(self.normalization_warnings),
        }


class _RunState:
    """Thread-safe counters shared by the workers of one run."""

    def __init__(self, summary: SyncSummary) -> None:
        self.summary = summary
        self._lock = threading.Lock()

    def increment(self, counter: str, amount: int = 1) -> None:
        with self._lock:
            setattr(self.summary, counter, getattr(self.summary, counter) + amount)

    def add_warnings(self, warnings: list[NormalizationWarning]) -> None:
        if not warnings:
            return
        with self._lock:
            self.summary.normalization_warnings.extend(warnings)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class KpiSyncService:
    """
    Synchronizes release workbooks into KPI reports.
    """

    def __init__(
        self,
        *,
        discovery: FileDiscovery,
        persistence: KpiPersistence,
        readers: Mapping[FileType, WorkbookReader] | None = None,
        builder: KpiBuilder | None = None,
        max_concurrency: int = 5,
        strict_values: bool = False,
    ) -> None:
        self._discovery = discovery
        self._persistence = persistence
        self._readers: dict[FileType, WorkbookReader] = dict(readers) if readers else {
            FileType.DLS: DLSReader(strict_values=strict_values),
            FileType.TEST_REPORT: TestReportReader(strict_values=strict_values),
            FileType.ESTIMATION: EstimationReader(strict_values=strict_values),
        }
        self._builder = builder or KpiBuilder()
        self._runner = BoundedTaskRunner(max_workers=max_concurrency)

    def sync_all(self, *, now: datetime | None = None) -> SyncSummary:
        """
        Sync every month folder and record the sync time.
        """

        summary = self._run(scope="all", year=None, month=None)
        self._save_last_sync_time(now or summary.finished_at)
        return summary

    def sync_month(
        self,
        year: int | str,
        month: int | str,
        *,
        now: datetime | None = None,
    ) -> SyncSummary:
        """
        Rebuild the KPI reports of one month.

        Release ids already stored for the month are collected first and
        deleted only after the traversal has written the new rows. When any
        month folder task failed, the previous rows are kept.
        """

        month_value = month_number(month)
        if month_value is None:
            raise ValueError(f"Unrecognized month: {month!r}")
        year_value = int(year)

        existing_ids = self._persistence.release_ids_for_period(year=year_value, month=month_value)
        logger.info(
            "Existing releases for period year=%s month=%s count=%s",
            year_value,
            month_value,
            len(existing_ids),
        )

        summary = self._run(
            scope=f"{year_value}-{month_value:02d}",
            year=str(year_value),
            month=month_name(month_value),
        )

        if existing_ids and summary.month_folders_failed:
            logger.warning(
                "Keeping previous releases for year=%s month=%s because %s month folder(s) failed",
                year_value,
                month_value,
                summary.month_folders_failed,
            )
        elif existing_ids:
            summary.releases_replaced = self._persistence.delete_releases(existing_ids)
            logger.info(
                "Deleted previous releases year=%s month=%s count=%s",
                year_value,
                month_value,
                summary.releases_replaced,
            )

        self._save_last_sync_time(now or summary.finished_at)
        return summary

    def sync_current_month(self, *, now: datetime | None = None) -> SyncSummary:
        current = now or datetime.now(tz=timezone.utc)
        return self.sync_month(current.year, current.month, now=now)

    # ------------------------------------------------------------------
    # Run internals
    # ------------------------------------------------------------------

    def _run(self, *, scope: str, year: str | None, month: str | None) -> SyncSummary:
        summary = SyncSummary(scope=scope, started_at=datetime.now(tz=timezone.utc))
        state = _RunState(summary)
        assembler = ReleaseAssembler(
            on_release_complete=lambda key, accumulator: self._on_release_complete(
                key, accumulator, state
            )
        )
        log_event(logger, logging.INFO, "kpi_sync_started", scope=scope, year=year, month=month)

        month_folders = self._discovery.list_month_folders(year=year, month=month)
        summary.month_folders = len(month_folders)
        if not month_folders:
            logger.warning("No month folders found scope=%s", scope)

        outcomes = self._runner.run_all(
            lambda folder: self._process_month(folder, assembler, state),
            month_folders,
        )
        summary.month_folders_failed = sum(1 for outcome in outcomes if not outcome.ok)

        pending = assembler.pending_releases()
        summary.incomplete_releases = sorted(str(key) for key in pending)
        for key in pending:
            missing = sorted(
                file_type.value for file_type in FileType if file_type not in assembler.accumulator(key)
            )
            logger.warning("Release incomplete release=%s missing=%s", key, ",".join(missing))

        summary.finished_at = datetime.now(tz=timezone.utc)
        log_event(
            logger,
            logging.WARNING if summary.has_errors else logging.INFO,
            "kpi_sync_finished",
            **summary.to_dict(),
        )
        return summary

    def _process_month(
        self,
        month_folder: MonthFolder,
        assembler: ReleaseAssembler,
        state: _RunState,
    ) -> None:
        logger.info("Traversing month folder year=%s month=%s", month_folder.year, month_folder.month)
        files = list(self._discovery.discover_files(month_folder))
        state.increment("files_seen", len(files))
        # Estimation files first; a release completes on its last required file.
        files.sort(key=_feed_order)
        for file in files:
            self.process_file(file, assembler, state)

    def process_file(
        self,
        file: DiscoveredFile,
        assembler: ReleaseAssembler,
        state: _RunState | None = None,
    ) -> None:
        """
        Read one discovered workbook and hand its metrics to the assembler.

        Never raises: every failure is logged and counted on ``state``.
        """

        if not is_readable_workbook_name(file.file_name):
            logger.info("Skipping non-workbook file=%s", file.file_name)
            _count(state, "files_skipped")
            return

        try:
            key = resolve_release_key(file.path_segments)
        except FolderHierarchyError as exc:
            logger.warning("Skipping file=%s: %s", file.file_name, exc)
            _count(state, "files_skipped")
            return

        file_type = classify_file(file.file_name, file.path_segments)
        if file_type is None:
            logger.warning("Unknown file type file=%s release=%s", file.file_name, key)
            _count(state, "files_skipped")
            return

        warnings: list[NormalizationWarning] = []
        try:
            workbook = self._discovery.open_workbook(file)
            try:
                metrics = self._readers[file_type].read(workbook, file.file_name, warnings=warnings)
            finally:
                workbook.close()
            logger.info(
                "Read %s file=%s release=%s fields=%s",
                file_type.value,
                file.file_name,
                key,
                len(metrics),
            )
            _count(state, "files_read")
            if state is not None:
                state.add_warnings(warnings)
            assembler.file_processed(key, file_type, metrics)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to process file=%s release=%s", file.file_name, key)
            _count(state, "files_failed")

    def _on_release_complete(
        self,
        key: ReleaseKey,
        accumulator: ReleaseAccumulator,
        state: _RunState,
    ) -> None:
        state.increment("releases_completed")
        month_value = month_number(key.month)
        if month_value is None:
            logger.error("Cannot map month folder to a number release=%s", key)
            state.increment("persistence_failures")
            return

        record = self._builder.build(accumulator, project_name=key.project)
        try:
            release_id = self._persistence.store_release_kpi(key=key, month=month_value, record=record)
        except KpiPersistenceError:
            logger.exception("KPI persistence failed release=%s", key)
            state.increment("persistence_failures")
            return

        state.increment("reports_persisted")
        log_event(
            logger,
            logging.INFO,
            "kpi_report_saved",
            release=str(key),
            release_id=release_id,
            man_days=record.man_days,
            engineering_efforts=record.engineering_efforts,
        )

    def _save_last_sync_time(self, timestamp: datetime | None) -> None:
        value = timestamp or datetime.now(tz=timezone.utc)
        try:
            self._persistence.save_last_sync_time(value)
        except KpiPersistenceError:
            logger.exception("Failed to record last sync time value=%s", value.isoformat())


def _count(state: _RunState | None, counter: str) -> None:
    if state is not None:
        state.increment(counter)


def _feed_order(file: DiscoveredFile) -> int:
    return 0 if classify_file(file.file_name, file.path_segments) is FileType.ESTIMATION else 1


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def get_kpi_sync_service(
    *,
    source: str | None = None,
    local_root: str | None = None,
) -> KpiSyncService:
    """
    Build a sync service from environment settings.

    ``source`` and ``local_root`` override KPI_SYNC_SOURCE and
    KPI_SYNC_LOCAL_ROOT.
    """

    settings = get_sync_settings()
    selected_source = (source or settings.source).lower()
    discovery: FileDiscovery
    if selected_source == "local":
        root = local_root or settings.local_root
        if not root:
            raise RuntimeError("KPI_SYNC_LOCAL_ROOT must be set when KPI_SYNC_SOURCE=local.")
        from app.connectors.local_workbooks import LocalFolderDiscovery

        discovery = LocalFolderDiscovery(root)
    elif selected_source == "graph":
        from app.connectors.base import GraphClient
        from app.connectors.graph_drive import GraphDriveDiscovery

        graph_settings = get_graph_settings()
        discovery = GraphDriveDiscovery(
            GraphClient(settings=graph_settings),
            root_folder=graph_settings.root_folder,
        )
    else:
        raise RuntimeError(f"Unknown sync source '{selected_source}'.")

    return KpiSyncService(
        discovery=discovery,
        persistence=SqlAlchemyKpiPersistence(),
        max_concurrency=settings.max_concurrency,
        strict_values=settings.strict_values,
    )
