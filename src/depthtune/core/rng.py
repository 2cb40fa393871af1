"""Deterministic RNG wrapper built on top of random.Random."""
from __future__ import annotations

from random import Random
from typing import Any, MutableSequence, Sequence, TypedDict, TypeVar

T_co = TypeVar("T_co")


class RNGStatePayload(TypedDict):
    version: int
    state: list[int]
    gauss: float | None


class RNG:
    """Wrapper around random.Random that provides deterministic helpers."""

    def __init__(self, seed: int) -> None:
        self.seed = seed
        self._random = Random(seed)

    def randint(self, a: int, b: int) -> int:
        """Return a random integer N such that a <= N <= b."""
        return self._random.randint(a, b)

    def random(self) -> float:
        """Return the next random floating point number in the range [0.0, 1.0)."""
        return self._random.random()

    def uniform(self, a: float, b: float) -> float:
        """Return a random float N such that a <= N <= b."""
        return self._random.uniform(a, b)

    def choice(self, seq: Sequence[T_co]) -> T_co:
        """Return a random element from the non-empty sequence."""
        if not seq:
            raise ValueError("Cannot choose from an empty sequence.")
        return self._random.choice(seq)

    def weighted_choice(self, seq: Sequence[T_co], weights: Sequence[float]) -> T_co:
        """Return an element of seq drawn proportionally to weights."""
        if not seq:
            raise ValueError("Cannot choose from an empty sequence.")
        if len(seq) != len(weights):
            raise ValueError("Weights must match the sequence length.")
        return self._random.choices(seq, weights=weights, k=1)[0]

    def shuffle(self, seq: MutableSequence[T_co]) -> None:
        """Shuffle the sequence in-place."""
        self._random.shuffle(seq)

    def export_state(self) -> RNGStatePayload:
        version, state, gauss = self._random.getstate()
        return {"version": version, "state": list(state), "gauss": gauss}

    def restore_state(self, payload: RNGStatePayload | dict[str, Any]) -> None:
        try:
            state = (int(payload["version"]), tuple(int(v) for v in payload["state"]), payload["gauss"])
            self._random.setstate(state)
        except (KeyError, TypeError) as exc:
            raise ValueError(f"Malformed RNG state: {exc}") from exc
