"""
ingestion/readers.py

Readers that pull a fixed set of named metrics out of the three release
workbooks (Defect Log Sheet, Test Report, Estimation).

Every reader is best-effort: whatever goes wrong inside a workbook is
logged and an empty (or partial) metric map is returned. Callers never
receive ``None`` and never see an exception for a malformed workbook.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping

from ingestion.cells import cell_at, is_blank
from ingestion.errors import (
    IngestionError,
    InvalidAddressError,
    SheetNotFoundError,
)
from ingestion.normalizer import NormalizationWarning, ValueNormalizer
from ingestion.scanners import OpenPointsScanner, PhaseCategoryScanner
from ingestion.types import Grid, RawMetricMap, WorkbookSource

logger = logging.getLogger(__name__)

_VALID_EXTENSIONS = (".xlsx", ".xlsm")

DLS_RANGE = "A1:M30"
DLS_CELLS: dict[str, str] = {
    "ut_cases": "F6",
    "integration_test_cases": "F7",
    "lines_of_code": "I6",
    "requirement_bugs": "B11",
    "design_bugs": "C11",
    "coding_bugs": "D11",
    "unit_test_case_bugs": "E11",
    "code_review_points": "F11",
    "integration_testing_points": "G11",
    "integration_testing_bugs": "G11",
    "uat_bugs": "H11",
    "go_live_bugs": "I11",
    "critical_bugs": "J11",
    "major_bugs": "K11",
    "minor_bugs": "L11",
    "low_bugs": "M11",
    "system_test_requirement_bugs": "B25",
    "system_test_design_bugs": "C25",
    "system_test_coding_bugs": "D25",
    "system_test_ut_bugs": "E25",
    "system_test_code_review_bugs": "F25",
    "system_test_integration_bugs": "G25",
}

TEST_REPORT_RANGE = "A1:T15"
TEST_REPORT_CELLS: dict[str, str] = {"test_rounds": "R6"}
WRIKE_ID_HEADER = "wrike id"

ESTIMATION_RANGE = "A1:H20"
ESTIMATION_CELLS: dict[str, str] = {
    "estimated_effort": "H14",
    "engineering_efforts": "H12",
}


def is_readable_workbook_name(file_name: str) -> bool:
    """
    Reject Office lock files (``~$report.xlsx``) and non-workbook files.
    """

    if file_name.startswith("~$"):
        return False
    return file_name.lower().endswith(_VALID_EXTENSIONS)


class WorkbookReader:
    """
    Shared reader mechanics: filename guard, error boundary and cell
    extraction through the address resolver and value normalizer.
    """

    kind: str = "workbook"

    def __init__(self, *, strict_values: bool = False) -> None:
        self._strict_values = strict_values

    def read(
        self,
        workbook: WorkbookSource,
        file_name: str,
        *,
        warnings: list[NormalizationWarning] | None = None,
    ) -> RawMetricMap:
        """
        Extract this reader's metrics from *workbook*.

        Values that had to be degraded to 0 are appended to *warnings* when
        a list is given.
        """
        metrics: RawMetricMap = {}

        if not is_readable_workbook_name(file_name):
            logger.warning("Skipping invalid Excel file: %s", file_name)
            return metrics

        normalizer = ValueNormalizer(strict=self._strict_values, warnings=warnings)
        try:
            self._read_into(metrics, workbook, file_name, normalizer)
        except SheetNotFoundError as exc:
            logger.warning("%s reader: %s file=%s", self.kind, exc, file_name)
            return {}
        except IngestionError as exc:
            logger.error("%s reader failed file=%s error=%s", self.kind, file_name, exc)
            return {}
        except Exception as exc:
            logger.exception("Unhandled %s reader failure file=%s error=%s", self.kind, file_name, exc)
            return {}
        return metrics

    def _read_into(
        self,
        metrics: RawMetricMap,
        workbook: WorkbookSource,
        file_name: str,
        normalizer: ValueNormalizer,
    ) -> None:
        raise NotImplementedError

    @staticmethod
    def _extract_cells(
        metrics: RawMetricMap,
        grid: Grid,
        cells: Mapping[str, str],
        normalizer: ValueNormalizer,
    ) -> None:
        for key, address in cells.items():
            try:
                raw = cell_at(grid, address)
            except InvalidAddressError as exc:
                logger.warning("Skipping metric %s: %s", key, exc)
                metrics[key] = 0
                continue
            metrics[key] = normalizer.normalize(raw, field=key)


class DLSReader(WorkbookReader):
    """
    Defect Log Sheet reader.

    The summary block lives on the third sheet (falling back to the first
    when the workbook has fewer sheets). Phase and category counts come
    from the sheet whose name contains "defect"; open points come from the
    second sheet.
    """

    kind = "DLS"

    def __init__(
        self,
        *,
        strict_values: bool = False,
        phase_scanner: PhaseCategoryScanner | None = None,
        open_points_scanner: OpenPointsScanner | None = None,
    ) -> None:
        super().__init__(strict_values=strict_values)
        self._phase_scanner = phase_scanner or PhaseCategoryScanner()
        self._open_points_scanner = open_points_scanner or OpenPointsScanner()

    def _read_into(
        self,
        metrics: RawMetricMap,
        workbook: WorkbookSource,
        file_name: str,
        normalizer: ValueNormalizer,
    ) -> None:
        sheets = workbook.sheet_names()
        if not sheets:
            raise SheetNotFoundError("Workbook has no sheets.", file_name=file_name)
        summary_sheet = sheets[2] if len(sheets) > 2 else sheets[0]
        logger.info("Reading '%s' from %s", summary_sheet, file_name)

        grid = workbook.fetch_range(summary_sheet, DLS_RANGE)
        summary: RawMetricMap = {}
        self._extract_cells(summary, grid, DLS_CELLS, normalizer)

        previous_phase, current_phase, categories = self._read_defect_sheet(workbook, sheets)
        open_points = self._read_open_points(workbook, sheets)

        metrics.update(summary)
        metrics["previous_phase_bugs"] = previous_phase
        metrics["current_phase_bugs"] = current_phase
        metrics["category_data"] = categories
        metrics["open_points"] = open_points

    def _read_defect_sheet(
        self,
        workbook: WorkbookSource,
        sheets: list[str],
    ) -> tuple[int, int, dict[str, int]]:
        defect_sheet = next((name for name in sheets if "defect" in name.lower()), None)
        if defect_sheet is None:
            logger.info("No defect sheet found; phase counts default to 0")
            return 0, 0, {}

        logger.info("Reading defect sheet '%s'", defect_sheet)
        try:
            grid = workbook.fetch_used_range(defect_sheet)
            result = self._phase_scanner.scan(grid)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not read defect sheet '%s': %s", defect_sheet, exc, exc_info=True)
            return 0, 0, {}
        logger.info("Category data extracted: %s", json.dumps(result.categories, sort_keys=True))
        return result.previous_phase_count, result.current_phase_count, dict(result.categories)

    def _read_open_points(self, workbook: WorkbookSource, sheets: list[str]) -> int:
        if len(sheets) < 2:
            return 0
        sheet = sheets[1]
        logger.info("Reading open points from 2nd sheet '%s'", sheet)
        try:
            count = self._open_points_scanner.scan(workbook.fetch_used_range(sheet))
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not read open points from '%s': %s", sheet, exc, exc_info=True)
            return 0
        logger.info("Found %s open points in 2nd sheet", count)
        return count


class TestReportReader(WorkbookReader):
    """
    Test Report reader: analysis sheet first, test-case table second.
    """

    __test__ = False
    kind = "TestReport"

    def _read_into(
        self,
        metrics: RawMetricMap,
        workbook: WorkbookSource,
        file_name: str,
        normalizer: ValueNormalizer,
    ) -> None:
        sheets = workbook.sheet_names()
        if len(sheets) < 2:
            raise SheetNotFoundError(
                "Expected analysis and test-case sheets not found.",
                file_name=file_name,
            )
        analysis_sheet, test_case_sheet = sheets[0], sheets[1]
        logger.info("Reading '%s' and '%s' from %s", analysis_sheet, test_case_sheet, file_name)

        analysis = workbook.fetch_range(analysis_sheet, TEST_REPORT_RANGE)
        extracted: RawMetricMap = {}
        self._extract_cells(extracted, analysis, TEST_REPORT_CELLS, normalizer)

        test_cases = workbook.fetch_used_range(test_case_sheet)
        unique_ids = unique_column_values(test_cases, WRIKE_ID_HEADER)
        extracted["unique_wrike_id_count"] = len(unique_ids)

        metrics.update(extracted)
        logger.info("Extracted %s unique Wrike IDs from %s", len(unique_ids), file_name)


class EstimationReader(WorkbookReader):
    kind = "Estimation"

    def _read_into(
        self,
        metrics: RawMetricMap,
        workbook: WorkbookSource,
        file_name: str,
        normalizer: ValueNormalizer,
    ) -> None:
        sheets = workbook.sheet_names()
        if not sheets:
            raise SheetNotFoundError("Workbook has no sheets.", file_name=file_name)
        logger.info("Reading '%s' from %s", sheets[0], file_name)

        grid = workbook.fetch_range(sheets[0], ESTIMATION_RANGE)
        self._extract_cells(metrics, grid, ESTIMATION_CELLS, normalizer)


def unique_column_values(grid: Grid, header: str) -> list[Any]:
    """
    Distinct non-blank values below the header cell in row 0 that reads
    *header* (trimmed, case-insensitive), in first-seen order.
    """

    if not grid:
        return []
    wanted = header.strip().lower()
    headers = grid[0] or ()
    column = next(
        (
            index
            for index, value in enumerate(headers)
            if isinstance(value, str) and value.strip().lower() == wanted
        ),
        None,
    )
    if column is None:
        logger.warning("Header '%s' not found in test case sheet", header)
        return []

    seen: dict[Any, None] = {}
    for row in grid[1:]:
        if row is None or column >= len(row):
            continue
        value = row[column]
        if is_blank(value):
            continue
        if isinstance(value, str):
            value = value.strip()
        seen.setdefault(value, None)
    return list(seen)
