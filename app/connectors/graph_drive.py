"""
app/connectors/graph_drive.py

Release folder discovery and workbook range reads on a OneDrive drive via
Microsoft Graph.

Expected hierarchy under the drive root::

    <root folder>/<year>/<month>/<project>/<release>/Documents/<type folder>/*.xlsx
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from typing import Any
from urllib.parse import quote

from app.connectors.base import GraphClient
from ingestion.classification import DOCUMENT_FOLDER, TYPE_FOLDERS
from ingestion.types import Cell, DiscoveredFile, MonthFolder

logger = logging.getLogger(__name__)

_YEAR_FOLDER = re.compile(r"^\d{4}$")
_MONTH_FOLDER = re.compile(r"^[A-Za-z]{3,9}$")
_WORKBOOK_FILE = re.compile(r"\.(xlsx|xlsm)$", re.IGNORECASE)


def _is_folder(item: dict[str, Any]) -> bool:
    return "folder" in item


def _sheet_segment(sheet_name: str) -> str:
    escaped = sheet_name.replace("'", "''")
    return quote(f"worksheets('{escaped}')", safe="()'=")


class GraphWorkbook:
    """
    ``WorkbookSource`` backed by the Graph workbook API for one drive item.
    """

    def __init__(self, client: GraphClient, file_id: str) -> None:
        self._client = client
        self._file_id = file_id
        self._sheet_names: list[str] | None = None

    @property
    def _workbook_path(self) -> str:
        return f"{self._client.drive_path}/items/{self._file_id}/workbook"

    def sheet_names(self) -> list[str]:
        if self._sheet_names is None:
            payload = self._client.get_json(f"{self._workbook_path}/worksheets")
            self._sheet_names = [
                sheet.get("name") for sheet in payload.get("value") or [] if sheet.get("name")
            ]
        return list(self._sheet_names)

    def fetch_range(self, sheet_name: str, address: str) -> list[list[Cell]]:
        payload = self._client.get_json(
            f"{self._workbook_path}/{_sheet_segment(sheet_name)}/range(address='{address}')"
        )
        return payload.get("values") or []

    def fetch_used_range(self, sheet_name: str) -> list[list[Cell]]:
        payload = self._client.get_json(
            f"{self._workbook_path}/{_sheet_segment(sheet_name)}/usedRange(valuesOnly=true)"
        )
        return payload.get("values") or []

    def close(self) -> None:
        self._sheet_names = None


class GraphDriveDiscovery:
    """
    ``FileDiscovery`` over a OneDrive drive.
    """

    def __init__(self, client: GraphClient, *, root_folder: str = "IM") -> None:
        self._client = client
        self._root_folder = root_folder

    def list_month_folders(
        self,
        *,
        year: str | None = None,
        month: str | None = None,
    ) -> list[MonthFolder]:
        root_items = self._client.list_children("/root")
        root = next(
            (
                item
                for item in root_items
                if _is_folder(item) and item.get("name", "").lower() == self._root_folder.lower()
            ),
            None,
        )
        if root is None:
            logger.warning("%s folder not found. Traversal stopped", self._root_folder)
            return []

        year_folders = [
            item
            for item in self._client.list_children(f"/items/{root['id']}")
            if _is_folder(item) and _YEAR_FOLDER.match(item.get("name", ""))
        ]
        if year is not None:
            year_folders = [item for item in year_folders if item["name"] == str(year)]
            if not year_folders:
                logger.warning("Year folder %s not found", year)
                return []

        month_prefix = month.strip().lower()[:3] if month else None
        folders: list[MonthFolder] = []
        for year_item in year_folders:
            month_items = [
                item
                for item in self._client.list_children(f"/items/{year_item['id']}")
                if _is_folder(item) and _MONTH_FOLDER.match(item.get("name", ""))
            ]
            if month_prefix:
                month_items = [
                    item for item in month_items if item["name"].lower().startswith(month_prefix)
                ]
                if not month_items:
                    logger.warning("Month folder %s not found under year %s", month, year_item["name"])
                    continue
            folders.extend(
                MonthFolder(folder_id=item["id"], year=year_item["name"], month=item["name"])
                for item in month_items
            )
        return folders

    def discover_files(self, month_folder: MonthFolder) -> Iterator[DiscoveredFile]:
        for project in self._child_folders(month_folder.folder_id):
            for release in self._child_folders(project["id"]):
                documents_folders = [
                    item
                    for item in self._child_folders(release["id"])
                    if item.get("name", "").lower() == DOCUMENT_FOLDER
                ]
                for documents in documents_folders:
                    type_folders = [
                        item
                        for item in self._child_folders(documents["id"])
                        if item.get("name", "").lower() in TYPE_FOLDERS
                    ]
                    for type_folder in type_folders:
                        path_segments = (
                            self._root_folder,
                            month_folder.year,
                            month_folder.month,
                            project["name"],
                            release["name"],
                            documents["name"],
                            type_folder["name"],
                        )
                        for item in self._client.list_children(f"/items/{type_folder['id']}"):
                            name = item.get("name", "")
                            if _is_folder(item) or not _WORKBOOK_FILE.search(name):
                                continue
                            yield DiscoveredFile(
                                file_id=item["id"],
                                file_name=name,
                                path_segments=path_segments,
                            )

    def open_workbook(self, file: DiscoveredFile) -> GraphWorkbook:
        return GraphWorkbook(self._client, file.file_id)

    def _child_folders(self, item_id: str) -> list[dict[str, Any]]:
        return [item for item in self._client.list_children(f"/items/{item_id}") if _is_folder(item)]
