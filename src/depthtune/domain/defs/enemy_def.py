"""Enemy profile definition structures."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class EnemyProfileDef:
    """Immutable base stats for one enemy kind."""

    id: str
    name: str
    base_health: float
    base_damage: float
    base_speed: float
    base_attack_speed: float = 1.0
    base_xp: int = 50
    base_credits: int = 20
    base_spawn_weight: float = 1.0
    min_spawn_depth: float = 0.0
    enemy_type: str = "mechanical_fish"

    def patrol_radius_at(self, speed_scale: float) -> float | None:
        """Profiles without a patrol capability report no radius."""
        return None


@dataclass(frozen=True, slots=True)
class PatrollingEnemyDef(EnemyProfileDef):
    """Enemy that holds a patrol area; its radius widens with movement speed."""

    patrol_radius: float = 8.0

    def patrol_radius_at(self, speed_scale: float) -> float | None:
        return self.patrol_radius * max(0.0, speed_scale)
