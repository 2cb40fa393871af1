"""Depth normalization and layer classification."""
from __future__ import annotations

from enum import Enum

from depthtune.domain.curves import clamp01

MAX_DEPTH = 100.0


class DepthLayer(str, Enum):
    SHALLOW = "shallow"
    MID = "mid"
    DEEP = "deep"
    ABYSS = "abyss"


# Upper bounds (inclusive) for each layer; anything deeper is the abyss.
_LAYER_BREAKPOINTS: tuple[tuple[float, DepthLayer], ...] = (
    (30.0, DepthLayer.SHALLOW),
    (60.0, DepthLayer.MID),
    (90.0, DepthLayer.DEEP),
)

LAYER_DIFFICULTY_MULTIPLIERS: dict[DepthLayer, float] = {
    DepthLayer.SHALLOW: 0.8,
    DepthLayer.MID: 1.2,
    DepthLayer.DEEP: 1.8,
    DepthLayer.ABYSS: 2.5,
}

# Used when no telemetry death rate is available for a depth.
FALLBACK_DEATH_RATES: dict[DepthLayer, float] = {
    DepthLayer.SHALLOW: 0.05,
    DepthLayer.MID: 0.15,
    DepthLayer.DEEP: 0.30,
    DepthLayer.ABYSS: 0.50,
}


def sanitize_depth(depth: object) -> float:
    """Coerce any depth input to a finite, non-negative float."""
    if isinstance(depth, bool) or not isinstance(depth, (int, float)):
        return 0.0
    value = float(depth)
    if value != value or value in (float("inf"), float("-inf")):
        return MAX_DEPTH if value == float("inf") else 0.0
    return max(0.0, value)


def normalize_depth(depth: object) -> float:
    return clamp01(sanitize_depth(depth) / MAX_DEPTH)


def classify_depth(depth: object) -> DepthLayer:
    value = sanitize_depth(depth)
    for upper_bound, layer in _LAYER_BREAKPOINTS:
        if value <= upper_bound:
            return layer
    return DepthLayer.ABYSS


def risk_level_for_min_depth(min_depth: float) -> int:
    if min_depth < 30:
        return 1
    if min_depth < 60:
        return 2
    if min_depth < 90:
        return 3
    return 4
