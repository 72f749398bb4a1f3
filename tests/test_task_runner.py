"""
tests/test_task_runner.py

Pytest unit tests for BoundedTaskRunner.

Coverage
--------
- Every item runs once
- In-flight tasks never exceed the limit
- Failures are reported per item without stopping others
"""

from __future__ import annotations

import threading
import time

from app.services.task_runner import BoundedTaskRunner


class TestBoundedTaskRunner:
    def test_runs_every_item(self) -> None:
        seen: list[int] = []
        lock = threading.Lock()

        def task(item: int) -> None:
            with lock:
                seen.append(item)

        outcomes = BoundedTaskRunner(max_workers=3).run_all(task, range(10))
        assert sorted(seen) == list(range(10))
        assert all(outcome.ok for outcome in outcomes)

    def test_limits_concurrency(self) -> None:
        lock = threading.Lock()
        active = 0
        peak = 0

        def task(_: int) -> None:
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.01)
            with lock:
                active -= 1

        BoundedTaskRunner(max_workers=2).run_all(task, range(12))
        assert 1 <= peak <= 2

    def test_failures_are_reported(self) -> None:
        def task(item: int) -> None:
            if item % 2:
                raise ValueError(f"odd {item}")

        outcomes = BoundedTaskRunner(max_workers=2).run_all(task, range(4))
        failed = sorted(outcome.item for outcome in outcomes if not outcome.ok)
        assert failed == [1, 3]
        assert all(isinstance(outcome.error, ValueError) for outcome in outcomes if not outcome.ok)

    def test_minimum_one_worker(self) -> None:
        assert BoundedTaskRunner(max_workers=0).max_workers == 1

    def test_no_items(self) -> None:
        assert BoundedTaskRunner().run_all(lambda item: None, []) == []
