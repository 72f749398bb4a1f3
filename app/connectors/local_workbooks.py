"""
app/connectors/local_workbooks.py

Release folder discovery and workbook reads on a local (or synced) folder
tree, using openpyxl.

The root directory holds the year folders directly::

    <root>/<year>/<month>/<project>/<release>/Documents/<type folder>/*.xlsx
"""

from __future__ import annotations

import logging
import re
import zipfile
from collections.abc import Iterator
from pathlib import Path

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.workbook.workbook import Workbook

from ingestion.cells import resolve
from ingestion.classification import DOCUMENT_FOLDER, TYPE_FOLDERS
from ingestion.errors import RemoteReadError, SheetNotFoundError
from ingestion.types import Cell, DiscoveredFile, MonthFolder

logger = logging.getLogger(__name__)

_YEAR_FOLDER = re.compile(r"^\d{4}$")
_MONTH_FOLDER = re.compile(r"^[A-Za-z]{3,9}$")
_WORKBOOK_SUFFIXES = {".xlsx", ".xlsm"}


class OpenpyxlWorkbook:
    """
    ``WorkbookSource`` over a workbook file on disk.

    The file is opened lazily in read-only, cached-values mode and kept
    open until :meth:`close`.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._workbook: Workbook | None = None

    def __enter__(self) -> "OpenpyxlWorkbook":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def sheet_names(self) -> list[str]:
        return list(self._open().sheetnames)

    def fetch_range(self, sheet_name: str, address: str) -> list[list[Cell]]:
        start, _, end = address.partition(":")
        min_row, min_col = resolve(start)
        max_row, max_col = resolve(end or start)
        worksheet = self._sheet(sheet_name)
        return [
            list(row)
            for row in worksheet.iter_rows(
                min_row=min_row + 1,
                max_row=max_row + 1,
                min_col=min_col + 1,
                max_col=max_col + 1,
                values_only=True,
            )
        ]

    def fetch_used_range(self, sheet_name: str) -> list[list[Cell]]:
        worksheet = self._sheet(sheet_name)
        return [list(row) for row in worksheet.iter_rows(min_row=1, min_col=1, values_only=True)]

    def close(self) -> None:
        if self._workbook is not None:
            self._workbook.close()
            self._workbook = None

    def _open(self) -> Workbook:
        if self._workbook is None:
            try:
                self._workbook = load_workbook(self._path, read_only=True, data_only=True)
            except (OSError, InvalidFileException, zipfile.BadZipFile, KeyError) as exc:
                raise RemoteReadError(f"Cannot open workbook {self._path}: {exc}") from exc
        return self._workbook

    def _sheet(self, sheet_name: str):
        workbook = self._open()
        if sheet_name not in workbook.sheetnames:
            raise SheetNotFoundError(f"Sheet '{sheet_name}' not found.", file_name=self._path.name)
        return workbook[sheet_name]


class LocalFolderDiscovery:
    """
    ``FileDiscovery`` over a directory tree.
    """

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root)
        if not self._root.is_dir():
            raise FileNotFoundError(f"Base directory not found: {self._root}")

    def list_month_folders(
        self,
        *,
        year: str | None = None,
        month: str | None = None,
    ) -> list[MonthFolder]:
        year_dirs = [
            path for path in _child_dirs(self._root) if _YEAR_FOLDER.match(path.name)
        ]
        if year is not None:
            year_dirs = [path for path in year_dirs if path.name == str(year)]
            if not year_dirs:
                logger.warning("Year folder %s not found", year)
                return []

        month_prefix = month.strip().lower()[:3] if month else None
        folders: list[MonthFolder] = []
        for year_dir in year_dirs:
            month_dirs = [
                path for path in _child_dirs(year_dir) if _MONTH_FOLDER.match(path.name)
            ]
            if month_prefix:
                month_dirs = [path for path in month_dirs if path.name.lower().startswith(month_prefix)]
                if not month_dirs:
                    logger.warning("Month folder %s not found under year %s", month, year_dir.name)
                    continue
            folders.extend(
                MonthFolder(folder_id=str(path), year=year_dir.name, month=path.name)
                for path in month_dirs
            )
        return folders

    def discover_files(self, month_folder: MonthFolder) -> Iterator[DiscoveredFile]:
        month_dir = Path(month_folder.folder_id)
        for project_dir in _child_dirs(month_dir):
            for release_dir in _child_dirs(project_dir):
                for documents_dir in _child_dirs(release_dir):
                    if documents_dir.name.lower() != DOCUMENT_FOLDER:
                        continue
                    for type_dir in _child_dirs(documents_dir):
                        if type_dir.name.lower() not in TYPE_FOLDERS:
                            continue
                        path_segments = (
                            self._root.name,
                            month_folder.year,
                            month_folder.month,
                            project_dir.name,
                            release_dir.name,
                            documents_dir.name,
                            type_dir.name,
                        )
                        for file_path in sorted(type_dir.iterdir()):
                            if file_path.is_file() and file_path.suffix.lower() in _WORKBOOK_SUFFIXES:
                                yield DiscoveredFile(
                                    file_id=str(file_path),
                                    file_name=file_path.name,
                                    path_segments=path_segments,
                                )

    def open_workbook(self, file: DiscoveredFile) -> OpenpyxlWorkbook:
        return OpenpyxlWorkbook(file.file_id)


def _child_dirs(path: Path) -> list[Path]:
    return sorted(child for child in path.iterdir() if child.is_dir())
