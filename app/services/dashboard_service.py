"""
app/services/dashboard_service.py

Dashboard read model: stored KPI reports reshaped into labelled rows and a
year → month → project → release hierarchy.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy.orm import Session

from db.repositories.kpi_report_repository import KpiReportRepository
from db.repositories.project_repository import ProjectRepository
from db.repositories.release_repository import ReleaseRepository
from db.repositories.sync_metadata_repository import SyncMetadataRepository
from ingestion.classification import MONTH_NAMES

logger = logging.getLogger(__name__)

# (label, deliverables field, bugs field); None means the column is absent
# from the row. "SAD" has no source data and reports zeros.
_ROW_LAYOUT: tuple[tuple[str, str | None, str | None], ...] = (
    ("SRS", "srs_deliverables", "srs_bugs"),
    ("SAD", "", ""),
    ("SDD", "srs_deliverables", "sdd_bugs"),
    ("CD (Kloc)", "loc", "code_review_bugs"),
    ("MT/UT(No of Unit Test cases)", "ut_deliverables", "ut_bugs"),
    ("IT(No of Test cases)", "it_deliverables", "it_bugs"),
    ("ST", "system_test_deliverables", "ntke_bugs"),
    ("Man Days", "man_days", None),
    ("Engineering Efforts", "engineering_efforts", None),
    ("Critical Bugs", None, "critical_bugs"),
    ("Major Bugs", None, "major_bugs"),
    ("Minor Bugs", None, "minor_bugs"),
    ("Low Bugs", None, "low_bugs"),
    ("Analysis Requirement Bugs", None, "srs_bugs"),
    ("Analysis Design Bugs", None, "sdd_bugs"),
    ("Analysis Coding Bugs", None, "coding_bugs"),
    ("Analysis UT Bugs", None, "ut_bugs"),
    ("Analysis Code Review Bugs", None, "code_review_bugs"),
    ("Analysis Integration Bugs", None, "it_bugs"),
    ("System Test Requirement Bugs", None, "system_test_requirement_bugs"),
    ("System Test Design Bugs", None, "system_test_design_bugs"),
    ("System Test Coding Bugs", None, "system_test_coding_bugs"),
    ("System Test UT Bugs", None, "system_test_ut_bugs"),
    ("System Test Code Review Bugs", None, "system_test_code_review_bugs"),
    ("System Test Integration Bugs", None, "system_test_integration_bugs"),
    ("Integration Testing Bugs", None, "integration_testing_bugs"),
    ("UAT Bugs", None, "uat_bugs"),
    ("Go Live Bugs", None, "go_live_bugs"),
    ("Previous Phase Bugs", None, "previous_phase_bugs"),
    ("Current Phase Bugs", None, "current_phase_bugs"),
    ("Open Points", "open_points", None),
)


def _field(source: Any, name: str) -> Any:
    if isinstance(source, Mapping):
        return source.get(name)
    return getattr(source, name, None)


def _row_value(report: Any, name: str) -> Any:
    # Empty field name marks a row with no source data.
    if name == "":
        return 0
    return _field(report, name)


def _category_data(raw: Any) -> dict[str, Any]:
    if not raw:
        return {}
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except ValueError:
            logger.error("Error parsing category data value=%r", raw)
            return {}
        return parsed if isinstance(parsed, dict) else {}
    if isinstance(raw, Mapping):
        return dict(raw)
    return {}


def map_kpi_rows(report: Any) -> dict[str, Any]:
    """
    Turn one stored KPI report (ORM row or mapping) into the dashboard
    payload ``{"rows": [...], "categoryData": {...}}``.
    """

    rows: list[dict[str, Any]] = []
    for label, deliverables_field, bugs_field in _ROW_LAYOUT:
        row: dict[str, Any] = {"row": label}
        if deliverables_field is not None:
            row["deliverables"] = _row_value(report, deliverables_field)
        if bugs_field is not None:
            row["bugs"] = _row_value(report, bugs_field)
        rows.append(row)
    return {"rows": rows, "categoryData": _category_data(_field(report, "category_data"))}


def _month_label(month: Any) -> str | None:
    try:
        number = int(month)
    except (TypeError, ValueError):
        return None
    return MONTH_NAMES[number - 1] if 1 <= number <= 12 else None


def _month_sort_key(label: str | None) -> int:
    # Latest month first; unknown labels last.
    if label in MONTH_NAMES:
        return 12 - MONTH_NAMES.index(label)
    return 99


def _year_sort_key(year: str) -> int:
    try:
        return -int(year)
    except ValueError:
        return 0


def build_kpi_hierarchy(
    projects: Iterable[Any],
    releases: Iterable[Any],
    reports: Iterable[Any],
) -> dict[str, dict[str | None, dict[str | None, dict[str, Any]]]]:
    """
    Nest KPI payloads as ``{year: {month name: {project: {release: payload}}}}``.

    Years are ordered newest first, months latest first and projects
    alphabetically. A release without a report still creates its project
    entry but contributes no release key.
    """

    project_names = {_field(project, "project_id"): _field(project, "project_name") for project in projects}
    reports_by_release: dict[Any, Any] = {}
    for report in reports:
        reports_by_release.setdefault(_field(report, "release_id"), report)

    hierarchy: dict[str, dict[str | None, dict[str | None, dict[str, Any]]]] = {}
    for release in releases:
        year = str(_field(release, "year"))
        month = _month_label(_field(release, "month"))
        project = project_names.get(_field(release, "project_id"))
        project_entry = hierarchy.setdefault(year, {}).setdefault(month, {}).setdefault(project, {})

        report = reports_by_release.get(_field(release, "release_id"))
        if report is not None:
            project_entry[_field(release, "release_name")] = map_kpi_rows(report)

    ordered: dict[str, dict[str | None, dict[str | None, dict[str, Any]]]] = {}
    for year in sorted(hierarchy, key=_year_sort_key):
        ordered[year] = {}
        for month in sorted(hierarchy[year], key=_month_sort_key):
            months = hierarchy[year][month]
            ordered[year][month] = {
                project: months[project] for project in sorted(months, key=lambda name: name or "")
            }
    return ordered


class DashboardService:
    """
    Loads projects, releases and reports and builds the dashboard hierarchy.
    """

    def get_kpi_hierarchy(self, db: Session) -> dict[str, Any]:
        projects = ProjectRepository(db).list_projects()
        releases = ReleaseRepository(db).list_releases()
        reports = KpiReportRepository(db).list_reports()
        logger.info(
            "Building KPI hierarchy projects=%s releases=%s reports=%s",
            len(projects),
            len(releases),
            len(reports),
        )
        return build_kpi_hierarchy(projects, releases, reports)

    def get_last_sync_time(self, db: Session) -> dict[str, str | None]:
        record = SyncMetadataRepository(db).get_last_sync_time()
        return {"lastSyncTime": record.value if record is not None else None}
