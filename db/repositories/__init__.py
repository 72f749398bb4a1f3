"""
Repository layer exports.
"""

from db.repositories.kpi_report_repository import KpiReportRepository
from db.repositories.project_repository import ProjectRepository
from db.repositories.release_repository import ReleaseRepository
from db.repositories.sync_metadata_repository import SyncMetadataRepository

__all__ = [
    "KpiReportRepository",
    "ProjectRepository",
    "ReleaseRepository",
    "SyncMetadataRepository",
]
