"""Enemy and boss scaling on top of the difficulty controller."""
from __future__ import annotations

import logging
from typing import List

from depthtune.core.rng import RNG
from depthtune.data.repositories import BossesRepository, EnemiesRepository
from depthtune.domain.defs import BossPhaseDef, EnemyProfileDef, EnemyScalingTuning
from depthtune.domain.depth import normalize_depth, sanitize_depth
from depthtune.domain.enemy_scaling import (
    DEFAULT_BOSS_PHASE,
    ScaledEnemyStats,
    apply_elite_modifiers,
    elite_chance,
    scale_profile,
    select_boss_phase,
)
from depthtune.services.difficulty_service import DifficultyController

logger = logging.getLogger(__name__)


class EnemyScaler:
    """Turns base enemy profiles into spawn-ready stats for a depth."""

    def __init__(
        self,
        difficulty: DifficultyController,
        *,
        tuning: EnemyScalingTuning | None = None,
        enemies_repo: EnemiesRepository | None = None,
        bosses_repo: BossesRepository | None = None,
    ) -> None:
        self._difficulty = difficulty
        self._tuning = tuning or EnemyScalingTuning()
        self._enemies_repo = enemies_repo
        self._bosses_repo = bosses_repo

    def scale_stats(self, profile: EnemyProfileDef, depth: object) -> ScaledEnemyStats:
        return scale_profile(
            profile,
            normalized_depth=normalize_depth(depth),
            difficulty=self._difficulty.get_difficulty_at_depth(depth),
            tuning=self._tuning,
        )

    def elite_chance(self, depth: object) -> float:
        return elite_chance(normalize_depth(depth), self._tuning)

    def apply_elite(self, stats: ScaledEnemyStats) -> ScaledEnemyStats:
        return apply_elite_modifiers(stats, self._tuning.elite)

    def roll_elite(self, stats: ScaledEnemyStats, depth: object, rng: RNG) -> ScaledEnemyStats:
        if rng.random() < self.elite_chance(depth):
            return self.apply_elite(stats)
        return stats

    def get_current_boss_phase(self, boss_id: str, health_fraction: float) -> BossPhaseDef:
        boss = self._bosses_repo.find(boss_id) if self._bosses_repo is not None else None
        if boss is None:
            logger.warning("Unknown boss '%s'; using the default phase.", boss_id)
            return DEFAULT_BOSS_PHASE
        return select_boss_phase(boss, health_fraction)

    def eligible_profiles(self, depth: object) -> List[EnemyProfileDef]:
        if self._enemies_repo is None:
            return []
        current = sanitize_depth(depth)
        return [profile for profile in self._enemies_repo.all() if profile.min_spawn_depth <= current]

    def pick_profile(self, depth: object, rng: RNG) -> EnemyProfileDef | None:
        """Draw one eligible profile weighted by its scaled spawn weight."""
        candidates = self.eligible_profiles(depth)
        if not candidates:
            return None
        spawn_scale = self._tuning.spawn_rate_curve(normalize_depth(depth))
        weights = [max(0.0, profile.base_spawn_weight * spawn_scale) for profile in candidates]
        if sum(weights) <= 0:
            return rng.choice(candidates)
        return rng.weighted_choice(candidates, weights)

    def spawn_stats(self, depth: object, rng: RNG) -> ScaledEnemyStats | None:
        """Pick, scale and elite-roll one enemy for `depth`."""
        profile = self.pick_profile(depth, rng)
        if profile is None:
            return None
        return self.roll_elite(self.scale_stats(profile, depth), depth, rng)
