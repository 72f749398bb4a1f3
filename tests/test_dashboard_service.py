"""
tests/test_dashboard_service.py

Pytest unit tests for the dashboard read model.

Coverage
--------
- KPI row labels and deliverables/bugs columns
- Category data from dict or JSON text
- Year → month → project → release nesting and ordering
- Releases without reports
- Last sync time lookup
"""

from __future__ import annotations

import json
from types import SimpleNamespace

from app.services.dashboard_service import DashboardService, build_kpi_hierarchy, map_kpi_rows
from ingestion.kpi_builder import KpiRecord


def _report(release_id: int, **values: object) -> dict:
    row = KpiRecord(**values).to_row()  # type: ignore[arg-type]
    row["release_id"] = release_id
    return row


class TestMapKpiRows:
    def test_row_labels_in_order(self) -> None:
        rows = map_kpi_rows(_report(1))["rows"]
        labels = [row["row"] for row in rows]
        assert labels[:7] == [
            "SRS",
            "SAD",
            "SDD",
            "CD (Kloc)",
            "MT/UT(No of Unit Test cases)",
            "IT(No of Test cases)",
            "ST",
        ]
        assert labels[-1] == "Open Points"
        assert len(labels) == 31

    def test_values(self) -> None:
        payload = map_kpi_rows(
            _report(1, srs_deliverables=12, srs_bugs=3, sdd_bugs=2, loc=2000.0, man_days=15, open_points=4)
        )
        rows = {row["row"]: row for row in payload["rows"]}
        assert rows["SRS"] == {"row": "SRS", "deliverables": 12, "bugs": 3}
        assert rows["SDD"] == {"row": "SDD", "deliverables": 12, "bugs": 2}
        assert rows["SAD"] == {"row": "SAD", "deliverables": 0, "bugs": 0}
        assert rows["CD (Kloc)"]["deliverables"] == 2000.0
        assert rows["Man Days"] == {"row": "Man Days", "deliverables": 15}
        assert rows["Critical Bugs"] == {"row": "Critical Bugs", "bugs": 0}
        assert rows["Open Points"] == {"row": "Open Points", "deliverables": 4}
        assert rows["Analysis Requirement Bugs"]["bugs"] == 3

    def test_category_data_from_dict(self) -> None:
        payload = map_kpi_rows(_report(1, category_data={"Ui": 2}))
        assert payload["categoryData"] == {"Ui": 2}

    def test_category_data_from_json_text(self) -> None:
        report = _report(1)
        report["category_data"] = json.dumps({"Functional": 5})
        assert map_kpi_rows(report)["categoryData"] == {"Functional": 5}

    def test_unreadable_category_data(self) -> None:
        report = _report(1)
        report["category_data"] = "{broken"
        assert map_kpi_rows(report)["categoryData"] == {}

    def test_accepts_attribute_objects(self) -> None:
        report = SimpleNamespace(**_report(1, loc=7))
        rows = {row["row"]: row for row in map_kpi_rows(report)["rows"]}
        assert rows["CD (Kloc)"]["deliverables"] == 7


class TestBuildKpiHierarchy:
    def test_nesting_and_order(self) -> None:
        projects = [
            SimpleNamespace(project_id=1, project_name="Checkout Service"),
            SimpleNamespace(project_id=2, project_name="Billing"),
        ]
        releases = [
            SimpleNamespace(release_id=10, project_id=1, year=2024, month=12, release_name="Release 1"),
            SimpleNamespace(release_id=11, project_id=1, year=2025, month=2, release_name="Release 2"),
            SimpleNamespace(release_id=12, project_id=2, year=2025, month=11, release_name="Release 9"),
            SimpleNamespace(release_id=13, project_id=1, year=2025, month=11, release_name="Release 3"),
        ]
        reports = [_report(release_id) for release_id in (10, 11, 12, 13)]

        hierarchy = build_kpi_hierarchy(projects, releases, reports)

        assert list(hierarchy) == ["2025", "2024"]
        assert list(hierarchy["2025"]) == ["November", "February"]
        assert list(hierarchy["2025"]["November"]) == ["Billing", "Checkout Service"]
        assert list(hierarchy["2025"]["November"]["Checkout Service"]) == ["Release 3"]
        assert "rows" in hierarchy["2024"]["December"]["Checkout Service"]["Release 1"]

    def test_release_without_report(self) -> None:
        projects = [SimpleNamespace(project_id=1, project_name="Billing")]
        releases = [SimpleNamespace(release_id=5, project_id=1, year=2025, month=1, release_name="Release 1")]
        hierarchy = build_kpi_hierarchy(projects, releases, [])
        assert hierarchy == {"2025": {"January": {"Billing": {}}}}

    def test_empty(self) -> None:
        assert build_kpi_hierarchy([], [], []) == {}


class _GetSession:
    def __init__(self, record: object | None) -> None:
        self.record = record
        self.calls: list[tuple] = []

    def get(self, model: type, key: str) -> object | None:
        self.calls.append((model.__name__, key))
        return self.record


class TestLastSyncTime:
    def test_returns_stored_value(self) -> None:
        session = _GetSession(SimpleNamespace(value="2025-11-03T02:00:00+00:00"))
        result = DashboardService().get_last_sync_time(session)
        assert result == {"lastSyncTime": "2025-11-03T02:00:00+00:00"}
        assert session.calls == [("SyncMetadata", "last_sync_time")]

    def test_never_synced(self) -> None:
        assert DashboardService().get_last_sync_time(_GetSession(None)) == {"lastSyncTime": None}
