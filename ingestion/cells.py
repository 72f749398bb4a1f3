"""
ingestion/cells.py

Spreadsheet-style cell addressing over a fetched 2-D value grid.
"""

from __future__ import annotations

import re

from openpyxl.utils import column_index_from_string, get_column_letter

from ingestion.errors import InvalidAddressError
from ingestion.types import Cell, Grid

_ADDRESS_PATTERN = re.compile(r"([A-Z]+)([0-9]+)")


def column_index(letters: str) -> int:
    """
    Convert column letters to a 0-based index (``A`` -> 0, ``Z`` -> 25,
    ``AA`` -> 26).
    """

    return column_index_from_string(letters) - 1


def column_letters(index: int) -> str:
    """
    Inverse of :func:`column_index`, used for log messages.
    """

    return get_column_letter(index + 1)


def resolve(address: str) -> tuple[int, int]:
    """
    Translate ``"B11"`` into 0-based ``(row, column)`` offsets.

    Raises
    ------
    InvalidAddressError
        If *address* does not fully match ``[A-Z]+[0-9]+``, names row 0 or
        a column past ``XFD``.
    """

    if not isinstance(address, str):
        raise InvalidAddressError(address)
    match = _ADDRESS_PATTERN.fullmatch(address)
    if match is None:
        raise InvalidAddressError(address)

    row_number = int(match.group(2))
    if row_number < 1:
        raise InvalidAddressError(address)
    try:
        col_index = column_index(match.group(1))
    except ValueError as exc:
        raise InvalidAddressError(address) from exc
    return row_number - 1, col_index


def cell_at(grid: Grid, address: str) -> Cell:
    """
    Return the grid value at *address*, or ``None`` when the address lies
    past the end of the fetched rows or a short trailing row.
    """

    row_index, col_index = resolve(address)
    return grid_value(grid, row_index, col_index)


def grid_value(grid: Grid, row_index: int, col_index: int) -> Cell:
    if row_index < 0 or col_index < 0 or row_index >= len(grid):
        return None
    row = grid[row_index]
    if row is None or col_index >= len(row):
        return None
    return row[col_index]


def is_blank(value: Cell) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False
