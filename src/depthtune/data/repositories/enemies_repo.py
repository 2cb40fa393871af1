"""Enemy profiles repository."""
from __future__ import annotations

from typing import Dict

from depthtune.data.errors import DataValidationError
from depthtune.data.repositories.base import RepositoryBase
from depthtune.domain.defs import EnemyProfileDef, PatrollingEnemyDef


class EnemiesRepository(RepositoryBase[EnemyProfileDef]):
    """Loads and validates enemy base profiles.

    Profiles that declare `patrol_radius` load as PatrollingEnemyDef.
    """

    def __init__(self, base_path=None) -> None:
        super().__init__("enemies.json", base_path)

    def _build(self, raw: dict[str, object]) -> Dict[str, EnemyProfileDef]:
        enemies: Dict[str, EnemyProfileDef] = {}
        for raw_id, payload in raw.items():
            if not isinstance(raw_id, str):
                raise DataValidationError("Enemy IDs must be strings.")
            context = f"enemy '{raw_id}'"
            data = self._require_mapping(payload, context)
            self._assert_required(data, {"name", "base_health", "base_damage", "base_speed"}, context)

            fields = dict(
                id=raw_id,
                name=self._require_str(data["name"], f"{context} name"),
                base_health=self._require_non_negative(data["base_health"], f"{context} base_health"),
                base_damage=self._require_non_negative(data["base_damage"], f"{context} base_damage"),
                base_speed=self._require_non_negative(data["base_speed"], f"{context} base_speed"),
                base_attack_speed=self._require_non_negative(
                    data.get("base_attack_speed", 1.0), f"{context} base_attack_speed"
                ),
                base_xp=self._require_int(data.get("base_xp", 50), f"{context} base_xp"),
                base_credits=self._require_int(data.get("base_credits", 20), f"{context} base_credits"),
                base_spawn_weight=self._require_non_negative(
                    data.get("spawn_weight", 1.0), f"{context} spawn_weight"
                ),
                min_spawn_depth=self._require_non_negative(
                    data.get("min_spawn_depth", 0.0), f"{context} min_spawn_depth"
                ),
                enemy_type=self._require_str(data.get("enemy_type", "mechanical_fish"), f"{context} enemy_type"),
            )
            if "patrol_radius" in data:
                enemies[raw_id] = PatrollingEnemyDef(
                    **fields,
                    patrol_radius=self._require_non_negative(data["patrol_radius"], f"{context} patrol_radius"),
                )
            else:
                enemies[raw_id] = EnemyProfileDef(**fields)
        return enemies
