"""
tests/test_kpi_builder.py

Pytest unit tests for KpiBuilder and KpiRecord, plus the end-to-end
workbook → reader → assembler → builder path for one release.

Coverage
--------
- Field mapping from the three metric maps
- Missing maps / keys default to 0
- Live-dashboard estimation override
- Category data from dict or JSON text
- KpiRecord immutability and row export
- End-to-end scenarios for a regular and a live-dashboard project
"""

from __future__ import annotations

import json
from dataclasses import FrozenInstanceError

import pytest

from ingestion.assembler import ReleaseAssembler
from ingestion.kpi_builder import (
    KPI_NUMERIC_FIELDS,
    KpiBuilder,
    KpiRecord,
    is_live_dashboard_project,
)
from ingestion.readers import DLSReader, EstimationReader, TestReportReader
from ingestion.types import FileType, ReleaseAccumulator, ReleaseKey
from tests.fakes import dls_workbook, estimation_workbook, report_workbook


@pytest.fixture()
def accumulator() -> ReleaseAccumulator:
    return {
        FileType.DLS: {
            "ut_cases": 40,
            "integration_test_cases": 25,
            "lines_of_code": 12500.0,
            "requirement_bugs": 3,
            "design_bugs": 2,
            "coding_bugs": 5,
            "unit_test_case_bugs": 1,
            "code_review_points": 4,
            "integration_testing_points": 6,
            "integration_testing_bugs": 6,
            "uat_bugs": 2,
            "go_live_bugs": 1,
            "critical_bugs": 1,
            "major_bugs": 2,
            "minor_bugs": 3,
            "low_bugs": 4,
            "system_test_requirement_bugs": 7,
            "previous_phase_bugs": 2,
            "current_phase_bugs": 5,
            "open_points": 3,
            "category_data": {"Functional": 4, "Ui": 3},
        },
        FileType.TEST_REPORT: {"unique_wrike_id_count": 12, "test_rounds": 2},
        FileType.ESTIMATION: {"estimated_effort": 15, "engineering_efforts": 6},
    }


class TestFieldMapping:
    def test_dls_fields(self, accumulator: ReleaseAccumulator) -> None:
        record = KpiBuilder().build(accumulator)
        assert record.loc == 12500.0
        assert record.ut_deliverables == 40
        assert record.it_deliverables == 25
        assert record.ia_bugs == 3
        assert record.srs_bugs == 3
        assert record.sdd_bugs == 2
        assert record.coding_bugs == 5
        assert record.ut_bugs == 1
        assert record.code_review_bugs == 4
        assert record.it_bugs == 6
        assert record.integration_testing_bugs == 6
        assert record.system_test_requirement_bugs == 7
        assert record.open_points == 3

    def test_test_report_fields(self, accumulator: ReleaseAccumulator) -> None:
        record = KpiBuilder().build(accumulator)
        assert record.ia_change_deliverables == 12
        assert record.srs_deliverables == 12

    def test_estimation_fields(self, accumulator: ReleaseAccumulator) -> None:
        record = KpiBuilder().build(accumulator)
        assert record.man_days == 15
        assert record.engineering_efforts == 6

    def test_unsourced_fields_are_zero(self, accumulator: ReleaseAccumulator) -> None:
        record = KpiBuilder().build(accumulator)
        for name in (
            "urs_deliverables",
            "urs_bugs",
            "wrike_deliverables",
            "wrike_bugs",
            "system_test_deliverables",
            "ntke_bugs",
            "estimation_cost",
            "man_month",
        ):
            assert getattr(record, name) == 0

    def test_missing_maps_default_to_zero(self) -> None:
        record = KpiBuilder().build({FileType.DLS: {"requirement_bugs": 3}})
        assert record.srs_bugs == 3
        assert record.srs_deliverables == 0
        assert record.man_days == 0
        assert dict(record.category_data) == {}

    def test_none_values_default_to_zero(self) -> None:
        record = KpiBuilder().build({FileType.ESTIMATION: {"estimated_effort": None}})
        assert record.man_days == 0


class TestLiveDashboard:
    @pytest.mark.parametrize("name", ["Live Dashboard v2", "OEM LIVE DASHBOARD", "live dashboard"])
    def test_detects_marker(self, name: str) -> None:
        assert is_live_dashboard_project(name)

    @pytest.mark.parametrize("name", [None, "", "Dashboard", "Live Dash"])
    def test_other_names(self, name: str | None) -> None:
        assert not is_live_dashboard_project(name)

    def test_estimation_forced_to_zero(self, accumulator: ReleaseAccumulator) -> None:
        record = KpiBuilder().build(accumulator, project_name="Live Dashboard v2")
        assert record.man_days == 0
        assert record.engineering_efforts == 0
        assert record.loc == 12500.0


class TestCategoryData:
    def test_from_dict(self, accumulator: ReleaseAccumulator) -> None:
        record = KpiBuilder().build(accumulator)
        assert dict(record.category_data) == {"Functional": 4, "Ui": 3}

    def test_from_json_text(self) -> None:
        record = KpiBuilder().build({FileType.DLS: {"category_data": json.dumps({"Ui": 2})}})
        assert dict(record.category_data) == {"Ui": 2}

    def test_unreadable_text_is_empty(self) -> None:
        record = KpiBuilder().build({FileType.DLS: {"category_data": "{not json"}})
        assert dict(record.category_data) == {}


class TestKpiRecord:
    def test_is_frozen(self) -> None:
        record = KpiRecord(loc=1)
        with pytest.raises(FrozenInstanceError):
            record.loc = 2  # type: ignore[misc]

    def test_category_data_is_read_only(self) -> None:
        record = KpiRecord(category_data={"Ui": 1})
        with pytest.raises(TypeError):
            record.category_data["Ui"] = 5  # type: ignore[index]

    def test_to_row(self) -> None:
        row = KpiRecord(loc=3, category_data={"Ui": 1}).to_row()
        assert set(row) == set(KPI_NUMERIC_FIELDS) | {"category_data"}
        assert row["loc"] == 3
        assert row["category_data"] == {"Ui": 1}
        assert type(row["category_data"]) is dict

    def test_category_data_json(self) -> None:
        assert json.loads(KpiRecord(category_data={"Ui": 1}).category_data_json()) == {"Ui": 1}

    def test_numeric_field_count(self) -> None:
        assert len(KPI_NUMERIC_FIELDS) == 38


# ---------------------------------------------------------------------------
# End-to-end release scenarios
# ---------------------------------------------------------------------------


def _run_release(project: str) -> list[KpiRecord]:
    key = ReleaseKey(year="2025", month="Nov", project=project, release="Release 1.2")
    builder = KpiBuilder()
    records: list[KpiRecord] = []
    assembler = ReleaseAssembler(
        on_release_complete=lambda done_key, acc: records.append(
            builder.build(acc, project_name=done_key.project)
        )
    )
    dls = dls_workbook(
        {"I6": "12.5k", "B11": 3, "C11": 2},
        defects=[("Functional", "Previous Phase"), ("ui", "Current Phase"), ("UI", "Current Phase")],
        open_statuses=["Open", "open", "Closed"],
    )
    report = report_workbook(["W-1", "W-2", "W-2", "W-3"])

    assembler.file_processed(
        key,
        FileType.ESTIMATION,
        EstimationReader().read(
            estimation_workbook(estimated_effort=10, engineering_efforts=4),
            "Effort Estimation.xlsx",
        ),
    )
    assembler.file_processed(key, FileType.DLS, DLSReader().read(dls, "Release_DLS.xlsx"))
    assembler.file_processed(
        key,
        FileType.ESTIMATION,
        EstimationReader().read(
            estimation_workbook(estimated_effort="5", engineering_efforts=1),
            "Change Estimation.xlsx",
        ),
    )
    assembler.file_processed(key, FileType.TEST_REPORT, TestReportReader().read(report, "Test Report.xlsx"))
    return records


class TestEndToEnd:
    def test_regular_project(self) -> None:
        records = _run_release("Checkout Service")
        assert len(records) == 1
        record = records[0]
        assert record.loc == 12500.0
        assert record.srs_bugs == 3
        assert record.sdd_bugs == 2
        assert record.srs_deliverables == 3
        assert record.man_days == 15
        assert record.engineering_efforts == 5
        assert record.previous_phase_bugs == 1
        assert record.current_phase_bugs == 2
        assert record.open_points == 2
        assert dict(record.category_data) == {"Functional": 1, "Ui": 2}

    def test_live_dashboard_project(self) -> None:
        records = _run_release("Live Dashboard v2")
        assert len(records) == 1
        assert records[0].man_days == 0
        assert records[0].engineering_efforts == 0
        assert records[0].loc == 12500.0
