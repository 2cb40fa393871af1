"""Boss definition structures."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True, slots=True)
class BossPhaseDef:
    """A combat phase entered once boss health drops to `health_threshold`."""

    name: str
    health_threshold: float
    attack_cooldown_multiplier: float = 1.0
    damage_multiplier: float = 1.0
    speed_multiplier: float = 1.0
    abilities: Tuple[str, ...] = ()
    enraged: bool = False


@dataclass(frozen=True, slots=True)
class BossDef:
    """Boss with phases ordered by strictly decreasing threshold; the last is the 0 catch-all."""

    id: str
    name: str
    phases: Tuple[BossPhaseDef, ...]
