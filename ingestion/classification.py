"""
ingestion/classification.py

Folder-path and filename rules that decide which release a workbook
belongs to and which reader handles it.
"""

from __future__ import annotations

import re
from typing import Sequence

from ingestion.errors import FolderHierarchyError
from ingestion.types import FileType, ReleaseKey

_YEAR_PATTERN = re.compile(r"^\d{4}$")
_MONTH_PATTERN = re.compile(r"^(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)", re.IGNORECASE)
_RELEASE_PATTERN = re.compile(r"^release", re.IGNORECASE)

_MONTH_NUMBERS: dict[str, int] = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

MONTH_NAMES: tuple[str, ...] = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

DOCUMENT_FOLDER = "documents"
TYPE_FOLDERS = frozenset({"defect log sheet", "testing report", "estimation"})


def classify_file(file_name: str, path_segments: Sequence[str] = ()) -> FileType | None:
    """
    Decide the workbook type from its name, falling back to the parent
    folder for estimation files. Returns ``None`` for unrecognized files.
    """

    name = file_name.lower()
    parent = path_segments[-1].lower() if path_segments else ""
    if "dls" in name:
        return FileType.DLS
    if "test" in name:
        return FileType.TEST_REPORT
    if "estimation" in name or parent == "estimation":
        return FileType.ESTIMATION
    return None


def resolve_release_key(path_segments: Sequence[str]) -> ReleaseKey:
    """
    Pick (year, month, project, release) out of a folder path such as
    ``IM/2025/Nov/Checkout Service/Release 1.2/Documents/Estimation``.

    The first segment is the configured root folder and is never matched.
    Below it the year, month and release folders are searched in that
    order. The project is the folder directly above the release folder
    and must sit below the month folder.

    Raises
    ------
    FolderHierarchyError
        If any of the four parts cannot be resolved.
    """

    segments = tuple(path_segments)
    year_index = _first_index(segments, _YEAR_PATTERN, start=1)
    month_index = (
        _first_index(segments, _MONTH_PATTERN, start=year_index + 1) if year_index is not None else None
    )
    if year_index is None or month_index is None:
        raise FolderHierarchyError(
            "Folder path is missing a year or month folder.",
            path_segments=segments,
        )

    release_index = _first_index(segments, _RELEASE_PATTERN, start=month_index + 2)
    if release_index is None:
        raise FolderHierarchyError(
            "Folder path has no project and release folders below the month.",
            path_segments=segments,
        )

    return ReleaseKey(
        year=segments[year_index],
        month=segments[month_index],
        project=segments[release_index - 1],
        release=segments[release_index],
    )


def month_number(value: str | int | None) -> int | None:
    """
    ``"Nov"``, ``"november"``, ``"11"`` and ``11`` all map to 11.
    Returns ``None`` when the value is not a month.
    """

    if value is None:
        return None
    if isinstance(value, int):
        return value if 1 <= value <= 12 else None

    normalized = str(value).strip().lower()
    if normalized.isdigit():
        number = int(normalized)
        return number if 1 <= number <= 12 else None
    return _MONTH_NUMBERS.get(normalized[:3])


def month_name(number: int) -> str | None:
    if 1 <= number <= 12:
        return MONTH_NAMES[number - 1]
    return None


def _first_index(segments: Sequence[str], pattern: re.Pattern[str], *, start: int = 0) -> int | None:
    for index in range(start, len(segments)):
        segment = segments[index]
        if pattern.search(segment):
            return index
    return None
