"""Fixed-capacity rolling sample buffer."""
from __future__ import annotations

from collections import deque
from typing import Deque, Generic, List, TypeVar

T = TypeVar("T", bool, float)

DEFAULT_WINDOW_SIZE = 10


class StatWindow(Generic[T]):
    """Keeps the most recent `capacity` samples; pushing past capacity evicts the oldest."""

    def __init__(self, capacity: int = DEFAULT_WINDOW_SIZE) -> None:
        if capacity <= 0:
            raise ValueError("StatWindow capacity must be positive.")
        self._samples: Deque[T] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        assert self._samples.maxlen is not None
        return self._samples.maxlen

    @property
    def count(self) -> int:
        return len(self._samples)

    def __len__(self) -> int:
        return len(self._samples)

    def push(self, sample: T) -> None:
        self._samples.append(sample)

    def mean(self) -> float:
        if not self._samples:
            return 0.0
        return sum(float(sample) for sample in self._samples) / len(self._samples)

    def rate_of_true(self) -> float:
        if not self._samples:
            return 0.0
        hits = sum(1 for sample in self._samples if sample)
        return hits / len(self._samples)

    def values(self) -> List[T]:
        return list(self._samples)

    def clear(self) -> None:
        self._samples.clear()
