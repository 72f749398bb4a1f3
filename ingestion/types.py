"""
ingestion/types.py

Shared data types and collaborator protocols for the ingestion pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Protocol, Sequence

Cell = Any
Grid = Sequence[Sequence[Cell]]
RawMetricMap = dict[str, Any]
CategoryTally = dict[str, int]


class FileType(str, Enum):
    DLS = "DLS"
    TEST_REPORT = "TestReport"
    ESTIMATION = "Estimation"


REQUIRED_FILE_TYPES: frozenset[FileType] = frozenset(FileType)

ReleaseAccumulator = dict[FileType, RawMetricMap]


@dataclass(frozen=True)
class ReleaseKey:
    """
    Identity of one release's accumulator, taken from its folder path.
    """

    year: str
    month: str
    project: str
    release: str

    def __str__(self) -> str:
        return f"{self.year}/{self.month}/{self.project}/{self.release}"


@dataclass(frozen=True)
class DiscoveredFile:
    """
    One spreadsheet found under the release folder hierarchy.

    ``path_segments`` lists folder names from the root folder down to the
    file's parent folder.
    """

    file_id: str
    file_name: str
    path_segments: tuple[str, ...]

    @property
    def parent_folder(self) -> str | None:
        return self.path_segments[-1] if self.path_segments else None


@dataclass(frozen=True)
class MonthFolder:
    """
    One month folder under a year folder; the unit of concurrent traversal.
    """

    folder_id: str
    year: str
    month: str


class WorkbookSource(Protocol):
    """
    Read access to one workbook: ordered sheet names plus range fetching.

    Implementations raise ``RemoteReadError`` when the source cannot be read.
    """

    def sheet_names(self) -> list[str]:
        ...

    def fetch_range(self, sheet_name: str, address: str) -> list[list[Cell]]:
        ...

    def fetch_used_range(self, sheet_name: str) -> list[list[Cell]]:
        ...

    def close(self) -> None:
        ...


class FileDiscovery(Protocol):
    def list_month_folders(
        self,
        *,
        year: str | None = None,
        month: str | None = None,
    ) -> list[MonthFolder]:
        ...

    def discover_files(self, month_folder: MonthFolder) -> Iterable[DiscoveredFile]:
        ...

    def open_workbook(self, file: DiscoveredFile) -> WorkbookSource:
        ...
