"""
tests/test_graph_connector.py

Pytest unit tests for the Microsoft Graph client, drive discovery and
workbook range reads. HTTP is replaced by an in-memory session.

Coverage
--------
- Client-credentials token caching
- Retry with backoff on retryable statuses, token refresh on 401
- Non-retryable failures raise GraphRequestError
- Paged child listing
- Month folder discovery and file traversal
- Worksheet range URLs
"""

from __future__ import annotations

from typing import Any

import pytest
import requests

from app.config import GraphSettings
from app.connectors.base import GraphClient, GraphRequestError
from app.connectors.graph_drive import GraphDriveDiscovery, GraphWorkbook
from ingestion.types import MonthFolder

BASE = "https://graph.test/v1.0"
DRIVE = f"{BASE}/users/kpi-bot/drive"


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None) -> None:
        self.status_code = status_code
        self._payload = payload if payload is not None else {}

    def json(self) -> Any:
        return self._payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"status {self.status_code}", response=self)  # type: ignore[arg-type]


class FakeSession:
    """Serves GET responses by URL; each URL may queue several responses."""

    def __init__(self, routes: dict[str, list[FakeResponse] | FakeResponse]) -> None:
        self._routes = {
            url: list(value) if isinstance(value, list) else [value] for url, value in routes.items()
        }
        self.requested: list[str] = []
        self.token_requests = 0

    def post(self, url: str, data: dict[str, Any], timeout: float) -> FakeResponse:
        self.token_requests += 1
        return FakeResponse(payload={"access_token": f"token-{self.token_requests}", "expires_in": 3600})

    def request(self, method: str, url: str, params: Any, headers: dict[str, str], timeout: float) -> FakeResponse:
        self.requested.append(url)
        queue = self._routes.get(url)
        if not queue:
            return FakeResponse(404)
        return queue.pop(0) if len(queue) > 1 else queue[0]


@pytest.fixture()
def settings() -> GraphSettings:
    return GraphSettings(
        tenant_id="tenant",
        client_id="client",
        client_secret="secret",
        drive_user_id="kpi-bot",
        base_url=BASE,
        max_retries=2,
        backoff_initial_seconds=0.1,
    )


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    sleeps: list[float] = []
    monkeypatch.setattr("app.connectors.base.time.sleep", sleeps.append)
    return sleeps


def _folder(item_id: str, name: str) -> dict[str, Any]:
    return {"id": item_id, "name": name, "folder": {"childCount": 1}}


def _file(item_id: str, name: str) -> dict[str, Any]:
    return {"id": item_id, "name": name, "file": {}}


# ---------------------------------------------------------------------------
# GraphClient
# ---------------------------------------------------------------------------


class TestGraphClient:
    def test_requires_configuration(self) -> None:
        with pytest.raises(RuntimeError):
            GraphClient(settings=GraphSettings())

    def test_token_is_cached(self, settings: GraphSettings) -> None:
        session = FakeSession({f"{BASE}/me": FakeResponse(payload={"ok": True})})
        client = GraphClient(settings=settings, session=session)  # type: ignore[arg-type]
        client.get_json("/me")
        client.get_json("/me")
        assert session.token_requests == 1

    def test_retries_retryable_status(self, settings: GraphSettings, no_sleep: list[float]) -> None:
        session = FakeSession(
            {f"{BASE}/me": [FakeResponse(503), FakeResponse(429), FakeResponse(payload={"ok": True})]}
        )
        client = GraphClient(settings=settings, session=session)  # type: ignore[arg-type]
        assert client.get_json("/me") == {"ok": True}
        assert no_sleep == [0.1, 0.2]

    def test_gives_up_after_retries(self, settings: GraphSettings) -> None:
        session = FakeSession({f"{BASE}/me": FakeResponse(500)})
        client = GraphClient(settings=settings, session=session)  # type: ignore[arg-type]
        with pytest.raises(GraphRequestError):
            client.get_json("/me")
        assert len(session.requested) == 3

    def test_non_retryable_status(self, settings: GraphSettings) -> None:
        session = FakeSession({f"{BASE}/me": FakeResponse(403)})
        client = GraphClient(settings=settings, session=session)  # type: ignore[arg-type]
        with pytest.raises(GraphRequestError) as excinfo:
            client.get_json("/me")
        assert excinfo.value.status_code == 403
        assert len(session.requested) == 1

    def test_unauthorized_refreshes_token(self, settings: GraphSettings) -> None:
        session = FakeSession({f"{BASE}/me": [FakeResponse(401), FakeResponse(payload={"ok": True})]})
        client = GraphClient(settings=settings, session=session)  # type: ignore[arg-type]
        assert client.get_json("/me") == {"ok": True}
        assert session.token_requests == 2

    def test_list_children_follows_next_link(self, settings: GraphSettings) -> None:
        next_url = f"{DRIVE}/items/root-id/children?$skiptoken=2"
        session = FakeSession(
            {
                f"{DRIVE}/items/root-id/children": FakeResponse(
                    payload={"value": [_folder("a", "A")], "@odata.nextLink": next_url}
                ),
                next_url: FakeResponse(payload={"value": [_folder("b", "B")]}),
            }
        )
        client = GraphClient(settings=settings, session=session)  # type: ignore[arg-type]
        assert [item["id"] for item in client.list_children("/items/root-id")] == ["a", "b"]


# ---------------------------------------------------------------------------
# GraphDriveDiscovery
# ---------------------------------------------------------------------------


@pytest.fixture()
def drive_session() -> FakeSession:
    def children(item: str, *values: dict[str, Any]) -> tuple[str, FakeResponse]:
        return f"{DRIVE}{item}/children", FakeResponse(payload={"value": list(values)})

    return FakeSession(
        dict(
            [
                children("/root", _folder("im", "IM"), _file("x", "readme.docx")),
                children("/items/im", _folder("y2025", "2025"), _folder("arch", "Archive")),
                children("/items/y2025", _folder("nov", "Nov"), _folder("oct", "October")),
                children("/items/nov", _folder("p1", "Checkout Service")),
                children("/items/p1", _folder("r1", "Release 1.2")),
                children("/items/r1", _folder("docs", "Documents"), _folder("old", "Old")),
                children("/items/docs", _folder("est", "Estimation"), _folder("misc", "Misc")),
                children("/items/est", _file("f1", "Effort Estimation.xlsx"), _file("f2", "notes.txt")),
            ]
        )
    )


class TestGraphDriveDiscovery:
    def test_lists_month_folders(self, settings: GraphSettings, drive_session: FakeSession) -> None:
        discovery = GraphDriveDiscovery(GraphClient(settings=settings, session=drive_session))  # type: ignore[arg-type]
        folders = discovery.list_month_folders()
        assert folders == [
            MonthFolder(folder_id="nov", year="2025", month="Nov"),
            MonthFolder(folder_id="oct", year="2025", month="October"),
        ]

    def test_filters_month(self, settings: GraphSettings, drive_session: FakeSession) -> None:
        discovery = GraphDriveDiscovery(GraphClient(settings=settings, session=drive_session))  # type: ignore[arg-type]
        folders = discovery.list_month_folders(year="2025", month="November")
        assert [folder.folder_id for folder in folders] == ["nov"]

    def test_missing_root_folder(self, settings: GraphSettings, drive_session: FakeSession) -> None:
        discovery = GraphDriveDiscovery(
            GraphClient(settings=settings, session=drive_session),  # type: ignore[arg-type]
            root_folder="KPI",
        )
        assert discovery.list_month_folders() == []

    def test_discovers_files(self, settings: GraphSettings, drive_session: FakeSession) -> None:
        discovery = GraphDriveDiscovery(GraphClient(settings=settings, session=drive_session))  # type: ignore[arg-type]
        files = list(discovery.discover_files(MonthFolder(folder_id="nov", year="2025", month="Nov")))
        assert len(files) == 1
        assert files[0].file_id == "f1"
        assert files[0].path_segments == (
            "IM",
            "2025",
            "Nov",
            "Checkout Service",
            "Release 1.2",
            "Documents",
            "Estimation",
        )


class TestGraphWorkbook:
    def test_sheet_names_and_ranges(self, settings: GraphSettings) -> None:
        workbook_url = f"{DRIVE}/items/f1/workbook"
        session = FakeSession(
            {
                f"{workbook_url}/worksheets": FakeResponse(
                    payload={"value": [{"name": "Estimate"}, {"name": "Sheet's 2"}]}
                ),
                f"{workbook_url}/worksheets('Estimate')/range(address='A1:H20')": FakeResponse(
                    payload={"values": [[1, 2], [3, 4]]}
                ),
                f"{workbook_url}/worksheets('Sheet''s%202')/usedRange(valuesOnly=true)": FakeResponse(
                    payload={"values": [["x"]]}
                ),
            }
        )
        workbook = GraphWorkbook(GraphClient(settings=settings, session=session), "f1")  # type: ignore[arg-type]
        assert workbook.sheet_names() == ["Estimate", "Sheet's 2"]
        assert workbook.fetch_range("Estimate", "A1:H20") == [[1, 2], [3, 4]]
        assert workbook.fetch_used_range("Sheet's 2") == [["x"]]

    def test_missing_values_is_empty(self, settings: GraphSettings) -> None:
        session = FakeSession(
            {f"{DRIVE}/items/f1/workbook/worksheets('S')/usedRange(valuesOnly=true)": FakeResponse(payload={})}
        )
        workbook = GraphWorkbook(GraphClient(settings=settings, session=session), "f1")  # type: ignore[arg-type]
        assert workbook.fetch_used_range("S") == []
