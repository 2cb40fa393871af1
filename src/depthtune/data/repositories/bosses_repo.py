"""Boss definitions repository."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, List

from depthtune.data.errors import DataReferenceError, DataValidationError
from depthtune.data.repositories.base import RepositoryBase
from depthtune.data.repositories.enemies_repo import EnemiesRepository
from depthtune.domain.defs import BossDef, BossPhaseDef

logger = logging.getLogger(__name__)


class BossesRepository(RepositoryBase[BossDef]):
    """Loads boss phase tables.

    Phase lists are normalized to strictly decreasing thresholds ending in
    a 0 catch-all; anything else is repaired with a warning.
    """

    def __init__(self, base_path=None, *, enemies_repo: EnemiesRepository | None = None) -> None:
        super().__init__("bosses.json", base_path)
        self._enemies_repo = enemies_repo

    def _build(self, raw: dict[str, object]) -> Dict[str, BossDef]:
        bosses: Dict[str, BossDef] = {}
        for raw_id, payload in raw.items():
            if not isinstance(raw_id, str):
                raise DataValidationError("Boss IDs must be strings.")
            context = f"boss '{raw_id}'"
            data = self._require_mapping(payload, context)
            self._assert_required(data, {"name", "phases"}, context)
            enemy_id = data.get("enemy_id")
            if enemy_id is not None and self._enemies_repo is not None:
                if self._enemies_repo.find(self._require_str(enemy_id, f"{context} enemy_id")) is None:
                    raise DataReferenceError(f"{context} references unknown enemy '{enemy_id}'.")
            raw_phases = data["phases"]
            if not isinstance(raw_phases, list) or not raw_phases:
                raise DataValidationError(f"{context} phases must be a non-empty list.")
            phases = [self._build_phase(entry, f"{context} phase {index}") for index, entry in enumerate(raw_phases)]
            bosses[raw_id] = BossDef(
                id=raw_id,
                name=self._require_str(data["name"], f"{context} name"),
                phases=tuple(self._normalize_phases(phases, raw_id)),
            )
        return bosses

    def _build_phase(self, payload: object, context: str) -> BossPhaseDef:
        data = self._require_mapping(payload, context)
        self._assert_required(data, {"name", "health_threshold"}, context)
        threshold = self._require_number(data["health_threshold"], f"{context} health_threshold")
        if not 0.0 <= threshold <= 1.0:
            raise DataValidationError(f"{context} health_threshold must be within [0, 1].")
        return BossPhaseDef(
            name=self._require_str(data["name"], f"{context} name"),
            health_threshold=threshold,
            attack_cooldown_multiplier=self._require_non_negative(
                data.get("attack_cooldown_multiplier", 1.0), f"{context} attack_cooldown_multiplier"
            ),
            damage_multiplier=self._require_non_negative(
                data.get("damage_multiplier", 1.0), f"{context} damage_multiplier"
            ),
            speed_multiplier=self._require_non_negative(
                data.get("speed_multiplier", 1.0), f"{context} speed_multiplier"
            ),
            abilities=tuple(self._require_str_list(data.get("abilities", []), f"{context} abilities")),
            enraged=self._require_bool(data.get("enraged", False), f"{context} enraged"),
        )

    @staticmethod
    def _normalize_phases(phases: List[BossPhaseDef], boss_id: str) -> List[BossPhaseDef]:
        if any(current.health_threshold > previous.health_threshold for previous, current in zip(phases, phases[1:])):
            logger.warning("Boss '%s' phases were not in descending threshold order; sorted.", boss_id)
        ordered: List[BossPhaseDef] = []
        for phase in sorted(phases, key=lambda item: item.health_threshold, reverse=True):
            if ordered and phase.health_threshold == ordered[-1].health_threshold:
                logger.warning(
                    "Boss '%s' has duplicate phase threshold %.2f; dropping phase '%s'.",
                    boss_id,
                    phase.health_threshold,
                    phase.name,
                )
                continue
            ordered.append(phase)
        if ordered[-1].health_threshold > 0.0:
            logger.warning("Boss '%s' has no 0 catch-all phase; extending '%s'.", boss_id, ordered[-1].name)
            ordered.append(replace(ordered[-1], health_threshold=0.0))
        return ordered
