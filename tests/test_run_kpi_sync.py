"""
tests/test_run_kpi_sync.py

Pytest unit tests for the sync CLI entry point.

Coverage
--------
- Scope selection (--all, --year/--month, current month)
- Source overrides passed to the service factory
- Exit codes
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

import pytest

from app.services.kpi_sync_service import SyncSummary
from scripts import run_kpi_sync


class StubService:
    def __init__(self, *, files_failed: int = 0) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self._files_failed = files_failed

    def _summary(self, scope: str) -> SyncSummary:
        summary = SyncSummary(scope=scope, started_at=datetime(2025, 11, 1, tzinfo=timezone.utc))
        summary.files_failed = self._files_failed
        return summary

    def sync_all(self) -> SyncSummary:
        self.calls.append(("all", ()))
        return self._summary("all")

    def sync_month(self, year: int, month: str) -> SyncSummary:
        self.calls.append(("month", (year, month)))
        return self._summary(f"{year}-{month}")

    def sync_current_month(self) -> SyncSummary:
        self.calls.append(("current", ()))
        return self._summary("current")


@pytest.fixture()
def factory(monkeypatch: pytest.MonkeyPatch) -> dict[str, Any]:
    state: dict[str, Any] = {"service": StubService(), "kwargs": None}

    def fake_factory(**kwargs: Any) -> StubService:
        state["kwargs"] = kwargs
        return state["service"]

    monkeypatch.setattr(run_kpi_sync, "get_kpi_sync_service", fake_factory)
    monkeypatch.setattr(run_kpi_sync, "configure_logging", lambda: None)
    return state


class TestRunKpiSync:
    def test_sync_all(self, factory: dict[str, Any], capsys: pytest.CaptureFixture[str]) -> None:
        assert run_kpi_sync.main(["--all"]) == 0
        assert factory["service"].calls == [("all", ())]
        assert json.loads(capsys.readouterr().out)["scope"] == "all"

    def test_sync_month(self, factory: dict[str, Any]) -> None:
        assert run_kpi_sync.main(["--year", "2025", "--month", "Nov"]) == 0
        assert factory["service"].calls == [("month", (2025, "Nov"))]

    def test_default_is_current_month(self, factory: dict[str, Any]) -> None:
        assert run_kpi_sync.main([]) == 0
        assert factory["service"].calls == [("current", ())]

    def test_source_overrides(self, factory: dict[str, Any]) -> None:
        run_kpi_sync.main(["--all", "--source", "local", "--local-root", "/data/IM"])
        assert factory["kwargs"] == {"source": "local", "local_root": "/data/IM"}

    def test_year_requires_month(self, factory: dict[str, Any]) -> None:
        with pytest.raises(SystemExit):
            run_kpi_sync.main(["--year", "2025"])

    def test_errors_give_exit_code_one(self, factory: dict[str, Any]) -> None:
        factory["service"] = StubService(files_failed=1)
        assert run_kpi_sync.main(["--all"]) == 1

    def test_factory_failure(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def broken(**kwargs: Any) -> None:
            raise RuntimeError("KPI_SYNC_LOCAL_ROOT must be set")

        monkeypatch.setattr(run_kpi_sync, "get_kpi_sync_service", broken)
        monkeypatch.setattr(run_kpi_sync, "configure_logging", lambda: None)
        assert run_kpi_sync.main(["--all", "--source", "local"]) == 2
