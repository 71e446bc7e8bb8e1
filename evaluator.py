"""
evaluator.py - Parallel Scenario Evaluator

Runs independent scenario requests on a bounded concurrent.futures pool and
hands results back in submission order. A failing scenario never aborts its
siblings: its exception is returned in its EvaluationOutcome instead.

Each scenario is a pure function of its request, so workers share no state.
The default pool is a ThreadPoolExecutor sized to the CPU count; pass
executor_cls=ProcessPoolExecutor for process workers (requests and the
evaluate function are picklable).
"""

from __future__ import annotations

import asyncio
import functools
import logging
import os
import time
from concurrent.futures import Executor, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Type

from coopsim.cycle import run_scenario
from coopsim.types_config import ScenarioRequest
from coopsim.types_result import ScenarioResult

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_PROGRESS_INTERVAL = 0.5  # Seconds between progress callbacks


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class ProgressUpdate:
    """
    Snapshot of pool progress.

    completed is counted from finished futures. active and queued are
    estimated from the pool size: active = min(workers, total - completed),
    queued = the rest.
    """
    completed: int
    active: int
    queued: int
    total: int


@dataclass(frozen=True)
class EvaluationOutcome:
    """Result or error for one request, at its submission index."""
    index: int
    result: Optional[ScenarioResult] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


ProgressCallback = Callable[[ProgressUpdate], None]


def default_worker_count() -> int:
    return max(1, os.cpu_count() or 1)


class _ProgressReporter:
    """Rate-limits progress callbacks to one per interval (forced updates always go out)."""

    def __init__(self, callback: Optional[ProgressCallback], interval: float, total: int, workers: int):
        self._callback = callback
        self._interval = max(0.0, interval)
        self._total = total
        self._workers = workers
        self._last: Optional[float] = None

    def report(self, completed: int, force: bool = False) -> None:
        if self._callback is None:
            return
        now = time.monotonic()
        if not force and self._last is not None and now - self._last < self._interval:
            return
        self._last = now
        remaining = self._total - completed
        active = min(self._workers, remaining)
        self._callback(ProgressUpdate(
            completed=completed,
            active=active,
            queued=remaining - active,
            total=self._total,
        ))


# =============================================================================
# CORE FUNCTION 1: evaluate_scenarios
# =============================================================================

def evaluate_scenarios(
    requests: Sequence[ScenarioRequest],
    max_workers: Optional[int] = None,
    on_progress: Optional[ProgressCallback] = None,
    progress_interval: float = DEFAULT_PROGRESS_INTERVAL,
    executor_cls: Type[Executor] = ThreadPoolExecutor,
    evaluate: Callable[[ScenarioRequest], ScenarioResult] = run_scenario,
) -> List[EvaluationOutcome]:
    """
    Evaluate scenario requests concurrently.

    Args:
        requests: Independent ScenarioRequest objects
        max_workers: Pool size (default: CPU count, never more than requests)
        on_progress: Called with ProgressUpdate, at most once per progress_interval
        progress_interval: Minimum seconds between non-final progress callbacks
        executor_cls: concurrent.futures executor class
        evaluate: Function run per request

    Returns:
        One EvaluationOutcome per request, in submission order
    """
    requests = list(requests)
    total = len(requests)
    if total == 0:
        return []

    workers = max(1, min(max_workers or default_worker_count(), total))
    reporter = _ProgressReporter(on_progress, progress_interval, total, workers)
    outcomes: List[Optional[EvaluationOutcome]] = [None] * total
    completed = 0

    with executor_cls(max_workers=workers) as executor:
        futures = {executor.submit(evaluate, request): index for index, request in enumerate(requests)}
        reporter.report(0, force=True)

        for future in as_completed(futures):
            index = futures[future]
            try:
                outcomes[index] = EvaluationOutcome(index=index, result=future.result())
            except Exception as exc:
                logger.warning(f"Scenario {index} failed: {exc!r}")
                outcomes[index] = EvaluationOutcome(index=index, error=exc)
            completed += 1
            reporter.report(completed, force=completed == total)

    return outcomes


# =============================================================================
# CORE FUNCTION 2: evaluate_scenarios_async
# =============================================================================

async def evaluate_scenarios_async(
    requests: Sequence[ScenarioRequest],
    **kwargs
) -> List[EvaluationOutcome]:
    """
    evaluate_scenarios for asyncio callers.

    The pool runs off the event loop; progress callbacks fire on a worker
    thread.
    """
    loop = asyncio.get_running_loop()
    call = functools.partial(evaluate_scenarios, list(requests), **kwargs)
    return await loop.run_in_executor(None, call)
