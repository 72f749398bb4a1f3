"""
ingestion/scanners.py

Heuristic scanners over loosely structured worksheet grids.

PhaseCategoryScanner
    Finds the column holding "Previous Phase" / "Current Phase" labels in a
    defect sheet, counts one defect per labelled row and tallies the
    category written in the column to its left.

OpenPointsScanner
    Counts rows whose status column reads "open".

Column detection is delegated to a ``PhaseColumnDetector`` so the layout
heuristic can be swapped without touching the readers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from ingestion.cells import column_letters, grid_value, is_blank
from ingestion.types import CategoryTally, Cell, Grid

logger = logging.getLogger(__name__)

PREVIOUS_PHASE = "previous phase"
CURRENT_PHASE = "current phase"
_PHASE_LABELS = frozenset({PREVIOUS_PHASE, CURRENT_PHASE})
_CATEGORY_HEADER_WORDS = frozenset({"category", "categories"})


def _cell_text(value: Cell) -> str:
    if value is None:
        return ""
    return str(value).strip().lower()


def normalize_category(label: str) -> str:
    """First letter upper, rest lower: ``"uI ISSUE"`` -> ``"Ui issue"``."""

    stripped = label.strip()
    return stripped[:1].upper() + stripped[1:].lower()


@dataclass(frozen=True)
class PhaseColumns:
    phase_column: int
    category_column: int
    first_row: int


@dataclass
class PhaseScanResult:
    previous_phase_count: int = 0
    current_phase_count: int = 0
    categories: CategoryTally = field(default_factory=dict)


class PhaseColumnDetector(Protocol):
    def detect(self, grid: Grid) -> PhaseColumns | None:
        ...


class ValueScanPhaseDetector:
    """
    Column-major search for the first cell that reads exactly
    "previous phase" or "current phase".

    Only the first ``max_columns`` columns and ``max_rows`` rows are
    searched. The first match wins even if later columns also hold phase
    labels.
    """

    def __init__(self, *, max_columns: int = 20, max_rows: int = 100) -> None:
        self._max_columns = max_columns
        self._max_rows = max_rows

    def detect(self, grid: Grid) -> PhaseColumns | None:
        row_limit = min(len(grid), self._max_rows)
        for col_index in range(self._max_columns):
            for row_index in range(row_limit):
                if _cell_text(grid_value(grid, row_index, col_index)) in _PHASE_LABELS:
                    return PhaseColumns(
                        phase_column=col_index,
                        category_column=col_index - 1,
                        first_row=row_index,
                    )
        return None


class HeaderRowPhaseDetector:
    """
    Looks for a header cell reading ``phase`` within the first
    ``max_header_rows`` rows and takes the column to its left as the
    category column.
    """

    def __init__(self, *, header_text: str = "phase", max_header_rows: int = 20) -> None:
        self._header_text = header_text.strip().lower()
        self._max_header_rows = max_header_rows

    def detect(self, grid: Grid) -> PhaseColumns | None:
        for row_index in range(min(len(grid), self._max_header_rows)):
            row = grid[row_index] or ()
            for col_index, value in enumerate(row):
                if _cell_text(value) == self._header_text:
                    return PhaseColumns(
                        phase_column=col_index,
                        category_column=col_index - 1,
                        first_row=row_index + 1,
                    )
        return None


class PhaseCategoryScanner:
    """
    Counts previous/current phase defects and tallies their categories.
    """

    def __init__(self, detector: PhaseColumnDetector | None = None) -> None:
        self._detector = detector or ValueScanPhaseDetector()

    def scan(self, grid: Grid) -> PhaseScanResult:
        result = PhaseScanResult()
        columns = self._detector.detect(grid)
        if columns is None:
            logger.warning("No column with 'Previous Phase' or 'Current Phase' values found in defect sheet")
            return result

        logger.debug(
            "Phase column=%s category column=%s first phase row=%s",
            column_letters(columns.phase_column),
            column_letters(columns.category_column) if columns.category_column >= 0 else None,
            columns.first_row + 1,
        )

        other_values: set[str] = set()
        for row_index in range(len(grid)):
            phase = _cell_text(grid_value(grid, row_index, columns.phase_column))
            if not phase:
                continue
            if phase == PREVIOUS_PHASE:
                result.previous_phase_count += 1
            elif phase == CURRENT_PHASE:
                result.current_phase_count += 1
            else:
                other_values.add(phase)
                continue
            self._tally_category(result.categories, grid, row_index, columns.category_column)

        if other_values:
            logger.debug("Ignored phase values (first 5): %s", sorted(other_values)[:5])
        logger.info(
            "Previous phase bugs=%s current phase bugs=%s categories=%s",
            result.previous_phase_count,
            result.current_phase_count,
            len(result.categories),
        )
        return result

    @staticmethod
    def _tally_category(
        tally: CategoryTally,
        grid: Grid,
        row_index: int,
        category_column: int,
    ) -> None:
        if category_column < 0:
            return
        raw = grid_value(grid, row_index, category_column)
        if is_blank(raw):
            return
        label = str(raw).strip()
        if label.lower() in _CATEGORY_HEADER_WORDS:
            return
        key = normalize_category(label)
        tally[key] = tally.get(key, 0) + 1


class OpenPointsScanner:
    """
    Counts rows whose status cell reads ``open`` (trimmed, case-insensitive).

    Defaults match the open-points sheet layout: status in column P
    (index 15), data from row 10 (index 9).
    """

    def __init__(self, *, status_column: int = 15, start_row: int = 9, status: str = "open") -> None:
        self._status_column = status_column
        self._start_row = start_row
        self._status = status.strip().lower()

    def scan(self, grid: Grid) -> int:
        count = 0
        for row_index in range(self._start_row, len(grid)):
            if _cell_text(grid_value(grid, row_index, self._status_column)) == self._status:
                count += 1
        return count
