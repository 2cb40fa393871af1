"""Piecewise control curves evaluated on a normalized [0, 1] input."""
from __future__ import annotations

import logging
import math
from bisect import bisect_right
from dataclasses import dataclass
from typing import Literal, Sequence, Tuple

logger = logging.getLogger(__name__)

Interpolation = Literal["linear", "smooth"]
_INTERPOLATIONS: tuple[Interpolation, ...] = ("linear", "smooth")


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def clamp01(value: float) -> float:
    if value != value:  # NaN
        return 0.0
    return clamp(value, 0.0, 1.0)


def lerp(a: float, b: float, t: float) -> float:
    """Unclamped-input linear interpolation; t is clamped to [0, 1]."""
    return a + (b - a) * clamp01(t)


def move_towards(current: float, target: float, max_delta: float) -> float:
    if abs(target - current) <= max_delta:
        return target
    return current + math.copysign(max_delta, target - current)


@dataclass(frozen=True, slots=True)
class CurveKey:
    time: float
    value: float


@dataclass(frozen=True, slots=True)
class Curve:
    """Ordered keys with strictly increasing times.

    Inputs outside the key range hold the first/last value. "smooth"
    segments use a cubic ease (zero tangents at each key), "linear" segments
    interpolate straight.
    """

    keys: Tuple[CurveKey, ...]
    interpolation: Interpolation = "linear"

    def __post_init__(self) -> None:
        if not self.keys:
            raise ValueError("Curve requires at least one key.")
        for previous, current in zip(self.keys, self.keys[1:]):
            if current.time <= previous.time:
                raise ValueError("Curve key times must be strictly increasing.")
        if self.interpolation not in _INTERPOLATIONS:
            raise ValueError(f"Unknown interpolation '{self.interpolation}'.")

    @classmethod
    def constant(cls, value: float) -> Curve:
        return cls(keys=(CurveKey(0.0, value),))

    @classmethod
    def linear(cls, start: float, end: float) -> Curve:
        return cls(keys=(CurveKey(0.0, start), CurveKey(1.0, end)))

    @classmethod
    def ease_in_out(cls, start: float, end: float) -> Curve:
        return cls(keys=(CurveKey(0.0, start), CurveKey(1.0, end)), interpolation="smooth")

    @classmethod
    def identity(cls) -> Curve:
        return cls.linear(0.0, 1.0)

    def evaluate(self, t: float) -> float:
        if t != t:
            t = 0.0
        keys = self.keys
        if t <= keys[0].time:
            return keys[0].value
        if t >= keys[-1].time:
            return keys[-1].value
        index = bisect_right([key.time for key in keys], t)
        left = keys[index - 1]
        right = keys[index]
        u = (t - left.time) / (right.time - left.time)
        if self.interpolation == "smooth":
            u = u * u * (3.0 - 2.0 * u)
        return left.value + (right.value - left.value) * u

    def __call__(self, t: float) -> float:
        return self.evaluate(t)


def build_curve(raw: object, *, fallback: Curve, context: str) -> Curve:
    """Parse a curve mapping, degrading to `fallback` on malformed input.

    Expected shape: {"interpolation": "smooth", "keys": [[0, 1], [1, 4]]}.
    """
    if raw is None:
        return fallback
    try:
        if not isinstance(raw, dict):
            raise ValueError("curve must be an object")
        interpolation = raw.get("interpolation", "linear")
        raw_keys = raw.get("keys")
        if not isinstance(raw_keys, list) or not raw_keys:
            raise ValueError("keys must be a non-empty list")
        keys = tuple(_parse_key(entry) for entry in raw_keys)
        return Curve(keys=keys, interpolation=interpolation)
    except (TypeError, ValueError) as exc:
        logger.warning("Malformed curve %s (%s); using fallback.", context, exc)
        return fallback


def _parse_key(entry: object) -> CurveKey:
    if not isinstance(entry, Sequence) or isinstance(entry, str) or len(entry) != 2:
        raise ValueError("each key must be a [time, value] pair")
    time, value = entry
    if isinstance(time, bool) or isinstance(value, bool):
        raise ValueError("key entries must be numbers")
    if not isinstance(time, (int, float)) or not isinstance(value, (int, float)):
        raise ValueError("key entries must be numbers")
    if not (math.isfinite(time) and math.isfinite(value)):
        raise ValueError("key entries must be finite")
    return CurveKey(float(time), float(value))
