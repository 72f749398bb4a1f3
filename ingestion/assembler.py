"""
ingestion/assembler.py

Per-release coordination of out-of-order workbook arrivals.

A release's KPI can only be built once its DLS, Test Report and
Estimation metrics have all been read. Files arrive in any order and from
several worker threads, so every per-key update and the completion check
run under that key's lock. Completion is terminal: the callback fires
exactly once per key, however many files arrive afterwards.

One assembler is meant to live for one sync run.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from enum import Enum

from ingestion.types import (
    REQUIRED_FILE_TYPES,
    FileType,
    RawMetricMap,
    ReleaseAccumulator,
    ReleaseKey,
)

logger = logging.getLogger(__name__)

ESTIMATION_SUM_FIELDS: tuple[str, ...] = ("estimated_effort", "engineering_efforts")

ReleaseCompleteCallback = Callable[[ReleaseKey, ReleaseAccumulator], None]


class ReleaseState(str, Enum):
    EMPTY = "empty"
    PARTIAL = "partial"
    COMPLETE = "complete"


class _ReleaseEntry:
    __slots__ = ("lock", "maps", "completed")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.maps: ReleaseAccumulator = {}
        self.completed = False


class ReleaseAssembler:
    """
    Accumulates per-release metric maps keyed by :class:`ReleaseKey`.

    Parameters
    ----------
    on_release_complete:
        Called once per key, outside the key's lock, with a snapshot of the
        accumulator when all three file types are present.
    """

    def __init__(self, on_release_complete: ReleaseCompleteCallback | None = None) -> None:
        self._on_release_complete = on_release_complete
        self._entries: dict[ReleaseKey, _ReleaseEntry] = {}
        self._entries_lock = threading.Lock()

    def file_processed(
        self,
        key: ReleaseKey,
        file_type: FileType,
        metrics: RawMetricMap,
    ) -> bool:
        """
        Merge one file's metrics into the release's accumulator.

        Returns ``True`` when this call completed the release (and the
        callback was invoked).
        """

        entry = self._entry_for(key)
        with entry.lock:
            existing = entry.maps.get(file_type)
            if file_type is FileType.ESTIMATION and existing is not None:
                merged = dict(existing)
                for field in ESTIMATION_SUM_FIELDS:
                    merged[field] = (existing.get(field) or 0) + (metrics.get(field) or 0)
                entry.maps[file_type] = merged
                logger.info(
                    "Combined Estimation release=%s estimated_effort=%s engineering_efforts=%s",
                    key,
                    merged["estimated_effort"],
                    merged["engineering_efforts"],
                )
            else:
                entry.maps[file_type] = dict(metrics)

            if entry.completed:
                logger.warning(
                    "%s file for release=%s arrived after its KPI was built; not rebuilding",
                    file_type.value,
                    key,
                )
                return False

            if not REQUIRED_FILE_TYPES.issubset(entry.maps):
                return False

            entry.completed = True
            snapshot = _snapshot(entry.maps)

        logger.info("All release files present release=%s", key)
        if self._on_release_complete is not None:
            self._on_release_complete(key, snapshot)
        return True

    def state(self, key: ReleaseKey) -> ReleaseState:
        entry = self._entries.get(key)
        if entry is None:
            return ReleaseState.EMPTY
        with entry.lock:
            if entry.completed:
                return ReleaseState.COMPLETE
            return ReleaseState.PARTIAL if entry.maps else ReleaseState.EMPTY

    def accumulator(self, key: ReleaseKey) -> ReleaseAccumulator:
        """Snapshot of the stored maps for *key* (empty if unseen)."""

        entry = self._entries.get(key)
        if entry is None:
            return {}
        with entry.lock:
            return _snapshot(entry.maps)

    def pending_releases(self) -> list[ReleaseKey]:
        """Keys that received files but never completed."""

        with self._entries_lock:
            items = list(self._entries.items())
        pending: list[ReleaseKey] = []
        for key, entry in items:
            with entry.lock:
                if entry.maps and not entry.completed:
                    pending.append(key)
        return pending

    def _entry_for(self, key: ReleaseKey) -> _ReleaseEntry:
        with self._entries_lock:
            entry = self._entries.get(key)
            if entry is None:
                entry = _ReleaseEntry()
                self._entries[key] = entry
            return entry


def _snapshot(maps: ReleaseAccumulator) -> ReleaseAccumulator:
    return {file_type: dict(metrics) for file_type, metrics in maps.items()}
