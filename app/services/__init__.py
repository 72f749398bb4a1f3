"""
app/services package marker.
"""

from app.services.dashboard_service import DashboardService, build_kpi_hierarchy, map_kpi_rows
from app.services.kpi_persistence import (
    KpiPersistence,
    KpiPersistenceError,
    SqlAlchemyKpiPersistence,
)
from app.services.kpi_sync_service import KpiSyncService, SyncSummary, get_kpi_sync_service
from app.services.task_runner import BoundedTaskRunner, TaskOutcome

__all__ = [
    "BoundedTaskRunner",
    "DashboardService",
    "KpiPersistence",
    "KpiPersistenceError",
    "KpiSyncService",
    "SqlAlchemyKpiPersistence",
    "SyncSummary",
    "TaskOutcome",
    "build_kpi_hierarchy",
    "get_kpi_sync_service",
    "map_kpi_rows",
]
