"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.kpi_report import KpiReport
from db.models.project import Project
from db.models.release import Release
from db.models.sync_metadata import SyncMetadata

__all__ = [
    "KpiReport",
    "Project",
    "Release",
    "SyncMetadata",
]
