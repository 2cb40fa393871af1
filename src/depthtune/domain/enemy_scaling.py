"""Deterministic enemy stat scaling helpers."""
from __future__ import annotations

from dataclasses import dataclass, replace

from depthtune.domain.curves import clamp01, lerp
from depthtune.domain.defs import (
    BossDef,
    BossPhaseDef,
    EliteModifiers,
    EnemyProfileDef,
    EnemyScalingTuning,
)

# Returned for unknown bosses so callers always get a usable phase.
DEFAULT_BOSS_PHASE = BossPhaseDef(name="default", health_threshold=0.0)


@dataclass(frozen=True, slots=True)
class ScaledEnemyStats:
    """Per-spawn combat stats; recomputed for every spawn and never persisted."""

    profile_id: str
    max_health: float
    damage: float
    move_speed: float
    attack_speed: float
    xp_reward: int
    credit_reward: int
    spawn_weight: float
    patrol_radius: float | None = None
    is_elite: bool = False


def scale_profile(
    profile: EnemyProfileDef,
    *,
    normalized_depth: float,
    difficulty: float,
    tuning: EnemyScalingTuning,
) -> ScaledEnemyStats:
    n = clamp01(normalized_depth)
    speed_scale = tuning.speed_curve(n)
    return ScaledEnemyStats(
        profile_id=profile.id,
        max_health=profile.base_health * tuning.health_curve(n) * difficulty,
        damage=profile.base_damage * tuning.damage_curve(n) * difficulty,
        move_speed=profile.base_speed * speed_scale,
        attack_speed=profile.base_attack_speed * tuning.attack_speed_curve(n),
        xp_reward=round(profile.base_xp * (1.0 + difficulty * tuning.xp_difficulty_factor)),
        credit_reward=round(profile.base_credits * (1.0 + difficulty * tuning.credit_difficulty_factor)),
        spawn_weight=profile.base_spawn_weight * tuning.spawn_rate_curve(n),
        patrol_radius=profile.patrol_radius_at(speed_scale),
    )


def elite_chance(normalized_depth: float, tuning: EnemyScalingTuning) -> float:
    return lerp(
        tuning.base_elite_chance,
        tuning.max_elite_chance,
        tuning.elite_chance_curve(clamp01(normalized_depth)),
    )


def apply_elite_modifiers(stats: ScaledEnemyStats, modifiers: EliteModifiers) -> ScaledEnemyStats:
    """Return the elite variant of `stats`. Already-elite stats are returned unchanged."""
    if stats.is_elite:
        return stats
    return replace(
        stats,
        max_health=stats.max_health * modifiers.health,
        damage=stats.damage * modifiers.damage,
        move_speed=stats.move_speed * modifiers.speed,
        attack_speed=stats.attack_speed * modifiers.attack_speed,
        xp_reward=round(stats.xp_reward * modifiers.rewards),
        credit_reward=round(stats.credit_reward * modifiers.rewards),
        is_elite=True,
    )


def select_boss_phase(boss: BossDef, health_fraction: float) -> BossPhaseDef:
    """First phase (descending thresholds) whose threshold <= fraction, else the last."""
    if not boss.phases:
        return DEFAULT_BOSS_PHASE
    fraction = clamp01(health_fraction)
    for phase in boss.phases:
        if phase.health_threshold <= fraction:
            return phase
    return boss.phases[-1]
