"""
ingestion/errors.py

Exception taxonomy for the workbook ingestion pipeline.

None of these are expected to escape a single file's processing: readers
catch them at their boundary and the sync service catches whatever is
left per file.
"""

from __future__ import annotations


class IngestionError(Exception):
    """Base exception for workbook ingestion failures."""


class InvalidAddressError(IngestionError, ValueError):
    """Raised when a cell address does not look like ``B11`` / ``AB123``."""

    def __init__(self, address: object) -> None:
        super().__init__(f"Invalid cell address: {address!r}")
        self.address = address


class SheetNotFoundError(IngestionError):
    """Raised when an expected worksheet is missing or out of position."""

    def __init__(self, message: str, *, file_name: str | None = None) -> None:
        super().__init__(message)
        self.file_name = file_name


class RemoteReadError(IngestionError):
    """Raised when a workbook range cannot be fetched from its source."""


class FolderHierarchyError(IngestionError):
    """
    Raised when a discovered file's folder path does not resolve to a
    complete (year, month, project, release) tuple.
    """

    def __init__(self, message: str, *, path_segments: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.path_segments = path_segments


class ValueNormalizationError(IngestionError, ValueError):
    """Raised by a strict normalizer when a cell value cannot be read as a number."""

    def __init__(self, *, field: str | None, raw: object, reason: str) -> None:
        super().__init__(f"Cannot normalize {field or 'value'}={raw!r}: {reason}")
        self.field = field
        self.raw = raw
        self.reason = reason
