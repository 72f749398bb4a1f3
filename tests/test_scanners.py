"""
tests/test_scanners.py

Pytest unit tests for the defect-sheet and open-points scanners.

Coverage
--------
- Phase column detection (value scan and header row)
- Previous / current phase counts, trimmed and case-insensitive
- Category tally normalization, blank and header-word skipping
- Sheets without a phase column
- Open-point counting from the data start row
"""

from __future__ import annotations

import pytest

from ingestion.scanners import (
    HeaderRowPhaseDetector,
    OpenPointsScanner,
    PhaseCategoryScanner,
    PhaseColumns,
    ValueScanPhaseDetector,
    normalize_category,
)
from tests.fakes import defect_grid, open_points_grid


@pytest.fixture()
def defects() -> list[list[object]]:
    return defect_grid(
        [
            ("functional", "Previous Phase"),
            ("UI", "current phase"),
            ("Functional", "  PREVIOUS PHASE "),
            ("", "Current Phase"),
            ("Performance", "Other"),
            (None, None),
        ]
    )


# ---------------------------------------------------------------------------
# Detectors
# ---------------------------------------------------------------------------


class TestDetectors:
    def test_value_scan_finds_first_phase_cell(self, defects: list) -> None:
        assert ValueScanPhaseDetector().detect(defects) == PhaseColumns(
            phase_column=2, category_column=1, first_row=1
        )

    def test_value_scan_respects_column_limit(self, defects: list) -> None:
        assert ValueScanPhaseDetector(max_columns=2).detect(defects) is None

    def test_header_row_detector(self, defects: list) -> None:
        assert HeaderRowPhaseDetector().detect(defects) == PhaseColumns(
            phase_column=2, category_column=1, first_row=1
        )

    def test_no_phase_values(self) -> None:
        assert ValueScanPhaseDetector().detect([["a", "b"], [1, 2]]) is None


# ---------------------------------------------------------------------------
# PhaseCategoryScanner
# ---------------------------------------------------------------------------


class TestPhaseCategoryScanner:
    def test_counts_phases(self, defects: list) -> None:
        result = PhaseCategoryScanner().scan(defects)
        assert result.previous_phase_count == 2
        assert result.current_phase_count == 2

    def test_tallies_normalized_categories(self, defects: list) -> None:
        result = PhaseCategoryScanner().scan(defects)
        assert result.categories == {"Functional": 2, "Ui": 1}

    def test_header_row_detector_gives_same_result(self, defects: list) -> None:
        by_value = PhaseCategoryScanner().scan(defects)
        by_header = PhaseCategoryScanner(HeaderRowPhaseDetector()).scan(defects)
        assert by_header == by_value

    def test_category_header_words_are_not_tallied(self) -> None:
        grid = defect_grid([("Categories", "Current Phase"), ("category", "Previous Phase")])
        result = PhaseCategoryScanner().scan(grid)
        assert result.current_phase_count == 1
        assert result.previous_phase_count == 1
        assert result.categories == {}

    def test_phase_in_first_column_has_no_categories(self) -> None:
        grid = [["Previous Phase"], ["Current Phase"], ["current phase"]]
        result = PhaseCategoryScanner().scan(grid)
        assert result.previous_phase_count == 1
        assert result.current_phase_count == 2
        assert result.categories == {}

    def test_missing_phase_column_yields_zeros(self) -> None:
        result = PhaseCategoryScanner().scan([["No", "Category"], [1, "UI"]])
        assert result.previous_phase_count == 0
        assert result.current_phase_count == 0
        assert result.categories == {}

    def test_empty_grid(self) -> None:
        assert PhaseCategoryScanner().scan([]).categories == {}

    def test_normalize_category(self) -> None:
        assert normalize_category("  uI ISSUE ") == "Ui issue"
        assert normalize_category("x") == "X"


# ---------------------------------------------------------------------------
# OpenPointsScanner
# ---------------------------------------------------------------------------


class TestOpenPointsScanner:
    def test_counts_open_rows(self) -> None:
        grid = open_points_grid(["Open", " open ", "Closed", None, "OPEN", "Reopened"])
        assert OpenPointsScanner().scan(grid) == 3

    def test_rows_before_start_are_ignored(self) -> None:
        grid = open_points_grid(["Open"])
        grid[3][15] = "Open"
        assert OpenPointsScanner().scan(grid) == 1

    def test_short_rows(self) -> None:
        grid = open_points_grid([])
        grid.append(["Open"])
        assert OpenPointsScanner().scan(grid) == 0

    def test_custom_layout(self) -> None:
        grid = [["status"], ["open"], ["closed"], ["Open"]]
        assert OpenPointsScanner(status_column=0, start_row=1).scan(grid) == 2
