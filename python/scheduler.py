"""
Single-threaded timer queue for step functions.

A step is a zero-argument callable returning either Continue(delay, next_step)
or DONE. The scheduler keeps a virtual millisecond clock; callers drive it
headlessly with run()/advance(), or map wall-clock time onto it.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import dataclass
from typing import Callable, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Continue:
    """Re-enter `step` after `delay` milliseconds."""

    delay: float
    step: Step


@dataclass(frozen=True)
class Done:
    """The phase has nothing more to schedule."""

    pass


DONE = Done()

StepResult = Union[Continue, Done]
Step = Callable[[], StepResult]


class Scheduler:
    """
    Timer queue ordered by due time, FIFO among steps due at the same time.

    Cancellation is a single flag: cancel() sets it and drops every pending
    step. While it is set no step runs and nothing is rescheduled; reset()
    clears it.
    """

    def __init__(self) -> None:
        self.now: float = 0.0
        self.cancelled = False
        self.steps_run = 0
        self._queue: list[tuple[float, int, Step]] = []
        self._sequence = itertools.count()

    def schedule(self, step: Step, delay: float = 0.0) -> None:
        if delay < 0:
            raise ValueError(f"Delay must be non-negative, got {delay}")
        heapq.heappush(self._queue, (self.now + delay, next(self._sequence), step))

    def cancel(self) -> None:
        """Halt every scheduled step before its next tick."""
        if self._queue:
            logger.debug("Cancelling %d pending step(s)", len(self._queue))
        self.cancelled = True
        self._queue.clear()

    def reset(self) -> None:
        self.cancelled = False

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def next_due(self) -> float | None:
        return self._queue[0][0] if self._queue else None

    def run_next(self) -> bool:
        """
        Run the earliest pending step, moving the clock to its due time.

        Returns False when nothing ran (queue empty or cancelled).
        """
        if self.cancelled or not self._queue:
            return False
        due, _, step = heapq.heappop(self._queue)
        self.now = max(self.now, due)
        result = step()
        self.steps_run += 1
        if isinstance(result, Continue) and not self.cancelled:
            self.schedule(result.step, result.delay)
        return True

    def run(self, max_steps: int | None = None) -> int:
        """Run steps until the queue drains, cancellation, or max_steps. Returns steps run."""
        count = 0
        while max_steps is None or count < max_steps:
            if not self.run_next():
                break
            count += 1
        return count

    def advance(self, elapsed: float, max_steps: int | None = None) -> int:
        """
        Move the clock forward by `elapsed` ms, running every step that falls due.

        `max_steps` caps the work done in one call; leftover steps stay queued
        and the clock stops at the last step run.
        """
        target = self.now + elapsed
        count = 0
        while self._queue and self._queue[0][0] <= target:
            if max_steps is not None and count >= max_steps:
                return count
            if not self.run_next():
                return count
            count += 1
        if not self.cancelled:
            self.now = target
        return count

    def run_until(self, predicate: Callable[[], bool], max_steps: int) -> bool:
        """Run steps until `predicate()` holds. Returns False if it never did."""
        for _ in range(max_steps):
            if predicate():
                return True
            if not self.run_next():
                break
        return predicate()
