"""
ingestion/kpi_builder.py

Maps a completed release accumulator onto the flat KPI record that is
persisted and shown on the dashboard.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import Any, Mapping

from ingestion.types import FileType, RawMetricMap, ReleaseAccumulator

logger = logging.getLogger(__name__)

LIVE_DASHBOARD_MARKER = "live dashboard"


@dataclass(frozen=True)
class KpiRecord:
    """
    Denormalized KPI values for one release.

    Field names match the ``kpi_reports`` columns. ``category_data`` maps
    normalized defect category labels to counts.
    """

    ia_change_deliverables: float = 0
    ia_bugs: float = 0
    loc: float = 0
    code_review_bugs: float = 0
    coding_bugs: float = 0
    ut_deliverables: float = 0
    ut_bugs: float = 0
    it_deliverables: float = 0
    it_bugs: float = 0
    srs_deliverables: float = 0
    srs_bugs: float = 0
    sdd_bugs: float = 0
    man_days: float = 0
    engineering_efforts: float = 0
    urs_deliverables: float = 0
    urs_bugs: float = 0
    wrike_deliverables: float = 0
    wrike_bugs: float = 0
    system_test_deliverables: float = 0
    ntke_bugs: float = 0
    estimation_cost: float = 0
    man_month: float = 0
    critical_bugs: float = 0
    major_bugs: float = 0
    minor_bugs: float = 0
    low_bugs: float = 0
    system_test_requirement_bugs: float = 0
    system_test_design_bugs: float = 0
    system_test_coding_bugs: float = 0
    system_test_ut_bugs: float = 0
    system_test_code_review_bugs: float = 0
    system_test_integration_bugs: float = 0
    integration_testing_bugs: float = 0
    uat_bugs: float = 0
    go_live_bugs: float = 0
    previous_phase_bugs: int = 0
    current_phase_bugs: int = 0
    open_points: int = 0
    category_data: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        if not isinstance(self.category_data, MappingProxyType):
            object.__setattr__(self, "category_data", MappingProxyType(dict(self.category_data)))

    def to_row(self) -> dict[str, Any]:
        """Plain column -> value dict, with ``category_data`` as a dict."""

        row = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "category_data"}
        row["category_data"] = dict(self.category_data)
        return row

    def category_data_json(self) -> str:
        return json.dumps(dict(self.category_data))


KPI_NUMERIC_FIELDS: tuple[str, ...] = tuple(
    f.name for f in fields(KpiRecord) if f.name != "category_data"
)

# KPI field -> (source file type, metric key). Fields absent here stay 0.
KPI_FIELD_SOURCES: dict[str, tuple[FileType, str]] = {
    "ia_change_deliverables": (FileType.TEST_REPORT, "unique_wrike_id_count"),
    "ia_bugs": (FileType.DLS, "requirement_bugs"),
    "loc": (FileType.DLS, "lines_of_code"),
    "coding_bugs": (FileType.DLS, "coding_bugs"),
    "code_review_bugs": (FileType.DLS, "code_review_points"),
    "ut_deliverables": (FileType.DLS, "ut_cases"),
    "ut_bugs": (FileType.DLS, "unit_test_case_bugs"),
    "it_deliverables": (FileType.DLS, "integration_test_cases"),
    "it_bugs": (FileType.DLS, "integration_testing_points"),
    "srs_deliverables": (FileType.TEST_REPORT, "unique_wrike_id_count"),
    "srs_bugs": (FileType.DLS, "requirement_bugs"),
    "sdd_bugs": (FileType.DLS, "design_bugs"),
    "man_days": (FileType.ESTIMATION, "estimated_effort"),
    "engineering_efforts": (FileType.ESTIMATION, "engineering_efforts"),
    "critical_bugs": (FileType.DLS, "critical_bugs"),
    "major_bugs": (FileType.DLS, "major_bugs"),
    "minor_bugs": (FileType.DLS, "minor_bugs"),
    "low_bugs": (FileType.DLS, "low_bugs"),
    "system_test_requirement_bugs": (FileType.DLS, "system_test_requirement_bugs"),
    "system_test_design_bugs": (FileType.DLS, "system_test_design_bugs"),
    "system_test_coding_bugs": (FileType.DLS, "system_test_coding_bugs"),
    "system_test_ut_bugs": (FileType.DLS, "system_test_ut_bugs"),
    "system_test_code_review_bugs": (FileType.DLS, "system_test_code_review_bugs"),
    "system_test_integration_bugs": (FileType.DLS, "system_test_integration_bugs"),
    "integration_testing_bugs": (FileType.DLS, "integration_testing_bugs"),
    "uat_bugs": (FileType.DLS, "uat_bugs"),
    "go_live_bugs": (FileType.DLS, "go_live_bugs"),
    "previous_phase_bugs": (FileType.DLS, "previous_phase_bugs"),
    "current_phase_bugs": (FileType.DLS, "current_phase_bugs"),
    "open_points": (FileType.DLS, "open_points"),
}


def is_live_dashboard_project(project_name: str | None) -> bool:
    return bool(project_name) and LIVE_DASHBOARD_MARKER in project_name.lower()


class KpiBuilder:
    """
    Builds one :class:`KpiRecord` from a release's three metric maps.

    Missing maps or keys read as 0; building never fails on absent data.
    Live-dashboard projects carry no estimation, so their ``man_days`` and
    ``engineering_efforts`` are forced to 0.
    """

    def build(
        self,
        accumulator: ReleaseAccumulator,
        *,
        project_name: str | None = None,
    ) -> KpiRecord:
        values: dict[str, Any] = {}
        for kpi_field, (file_type, metric_key) in KPI_FIELD_SOURCES.items():
            values[kpi_field] = _metric(accumulator.get(file_type), metric_key)

        dls = accumulator.get(FileType.DLS) or {}
        record = KpiRecord(**values, category_data=_category_tally(dls.get("category_data")))

        if is_live_dashboard_project(project_name):
            logger.info("Setting estimation to 0 for live dashboard project=%r", project_name)
            record = replace(record, man_days=0, engineering_efforts=0)
        return record


def _metric(metrics: RawMetricMap | None, key: str) -> Any:
    if not metrics:
        return 0
    return metrics.get(key) or 0


def _category_tally(raw: Any) -> dict[str, int]:
    if not raw:
        return {}
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring unreadable category data %r", raw)
            return {}
    if not isinstance(raw, Mapping):
        return {}
    return {str(label): int(count) for label, count in raw.items()}

