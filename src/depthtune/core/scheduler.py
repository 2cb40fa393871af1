"""Cooperative timer queue for delayed effects.

Delayed work (staged penalty application, wave spawns, reward grants) is
scheduled as a continuation keyed by a deadline on the engine clock. The
engine drains due continuations at the start of every tick, on the tick
thread, so nothing here needs locking.

Each continuation may carry a guard. The guard is evaluated right before the
callback runs; a falsy result means the state the continuation was scheduled
against has been reset or replaced, and the callback is dropped.
"""
from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable, List

logger = logging.getLogger(__name__)

Guard = Callable[[], bool]


@dataclass(order=True, slots=True)
class _Entry:
    deadline: float
    sequence: int
    label: str = field(compare=False)
    callback: Callable[[], None] = field(compare=False)
    guard: Guard | None = field(compare=False, default=None)
    cancelled: bool = field(compare=False, default=False)


@dataclass(slots=True)
class ContinuationHandle:
    """Returned by ContinuationQueue.schedule; allows explicit cancellation."""

    _entry: _Entry

    @property
    def label(self) -> str:
        return self._entry.label

    @property
    def deadline(self) -> float:
        return self._entry.deadline

    def cancel(self) -> None:
        self._entry.cancelled = True


class Generation:
    """Monotonic counter used to invalidate continuations on reset."""

    def __init__(self) -> None:
        self._value = 0

    @property
    def value(self) -> int:
        return self._value

    def bump(self) -> int:
        self._value += 1
        return self._value

    def guard(self) -> Guard:
        """Return a guard that stays true until the next bump()."""
        captured = self._value
        return lambda: self._value == captured


class ContinuationQueue:
    """Deadline-ordered queue of callbacks drained once per tick."""

    def __init__(self) -> None:
        self._heap: List[_Entry] = []
        self._counter = itertools.count()

    def __len__(self) -> int:
        return sum(1 for entry in self._heap if not entry.cancelled)

    def schedule(
        self,
        deadline: float,
        callback: Callable[[], None],
        *,
        label: str = "continuation",
        guard: Guard | None = None,
    ) -> ContinuationHandle:
        entry = _Entry(
            deadline=float(deadline),
            sequence=next(self._counter),
            label=label,
            callback=callback,
            guard=guard,
        )
        heapq.heappush(self._heap, entry)
        return ContinuationHandle(entry)

    def run_due(self, now: float) -> int:
        """Run every continuation whose deadline is <= now.

        Returns the number of callbacks that actually ran. Continuations
        scheduled by a callback for a deadline <= now run in the same pass.
        """
        ran = 0
        while self._heap and self._heap[0].deadline <= now:
            entry = heapq.heappop(self._heap)
            if entry.cancelled:
                continue
            if entry.guard is not None and not entry.guard():
                logger.debug("Dropping stale continuation '%s'.", entry.label)
                continue
            try:
                entry.callback()
            except Exception:
                # A failing effect must not take the tick loop down with it.
                logger.exception("Continuation '%s' failed.", entry.label)
                continue
            ran += 1
        return ran

    def clear(self) -> None:
        self._heap.clear()
