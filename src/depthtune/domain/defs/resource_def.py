"""Resource definition structures."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Rarity(str, Enum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


@dataclass(frozen=True, slots=True)
class ResourceDef:
    id: str
    name: str
    base_value: int
    rarity: Rarity
    min_depth: float = 0.0
    weight: float = 1.0
