"""
app/services/task_runner.py

Bounded worker pool for traversal tasks.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class TaskOutcome(Generic[T]):
    item: T
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BoundedTaskRunner:
    """
    Runs one task per item with at most ``max_workers`` in flight.

    A failing task is logged and reported in its outcome; it never stops
    the remaining tasks.
    """

    def __init__(self, *, max_workers: int = 5, thread_name_prefix: str = "kpi-sync") -> None:
        self._max_workers = max(1, max_workers)
        self._thread_name_prefix = thread_name_prefix

    @property
    def max_workers(self) -> int:
        return self._max_workers

    def run_all(self, task: Callable[[T], None], items: Iterable[T]) -> list[TaskOutcome[T]]:
        outcomes: list[TaskOutcome[T]] = []
        with ThreadPoolExecutor(
            max_workers=self._max_workers,
            thread_name_prefix=self._thread_name_prefix,
        ) as executor:
            futures = {executor.submit(task, item): item for item in items}
            for future in as_completed(futures):
                item = futures[future]
                error = future.exception()
                if error is not None:
                    logger.error("Task failed item=%s error=%s", item, error, exc_info=error)
                outcomes.append(TaskOutcome(item=item, error=error))
        return outcomes
