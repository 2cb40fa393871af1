"""Frozen tuning records for every engine controller.

Each section mirrors a top-level key of `tuning.json`; omitted keys keep the
defaults declared here.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Tuple

from depthtune.domain.curves import Curve
from .resource_def import Rarity


@dataclass(frozen=True, slots=True)
class DifficultyTuning:
    enable_dynamic_difficulty: bool = True
    base_exponent: float = 1.5
    max_depth_bonus: float = 4.0
    evaluation_interval: float = 300.0
    smoothing_rate: float = 0.1
    window_size: int = 10
    expected_completion_time: float = 600.0
    fast_completion_ratio: float = 0.8
    high_death_rate: float = 0.7
    low_death_rate: float = 0.2
    high_death_penalty: float = 0.15
    low_death_bonus: float = 0.10
    fast_completion_bonus: float = 0.05
    min_skill_factor: float = 0.8
    max_skill_factor: float = 1.2
    struggling_skill: float = 0.9
    excelling_skill: float = 1.1
    decrease_step: float = 0.05
    increase_step: float = 0.05
    decay_step: float = 0.02
    min_dynamic_adjustment: float = 0.5
    max_dynamic_adjustment: float = 1.5


@dataclass(frozen=True, slots=True)
class EliteModifiers:
    health: float = 2.0
    damage: float = 1.5
    speed: float = 1.2
    attack_speed: float = 1.3
    rewards: float = 2.0


@dataclass(frozen=True, slots=True)
class EnemyScalingTuning:
    health_curve: Curve = field(default_factory=lambda: Curve.ease_in_out(1.0, 5.0))
    damage_curve: Curve = field(default_factory=lambda: Curve.ease_in_out(1.0, 3.0))
    speed_curve: Curve = field(default_factory=lambda: Curve.ease_in_out(1.0, 1.3))
    attack_speed_curve: Curve = field(default_factory=lambda: Curve.ease_in_out(1.0, 1.5))
    spawn_rate_curve: Curve = field(default_factory=lambda: Curve.linear(0.5, 2.0))
    elite_chance_curve: Curve = field(default_factory=lambda: Curve.ease_in_out(0.0, 1.0))
    base_elite_chance: float = 0.05
    max_elite_chance: float = 0.30
    xp_difficulty_factor: float = 0.5
    credit_difficulty_factor: float = 0.3
    elite: EliteModifiers = field(default_factory=EliteModifiers)


def _default_rarity_multipliers() -> Mapping[Rarity, float]:
    return MappingProxyType(
        {
            Rarity.COMMON: 1.0,
            Rarity.UNCOMMON: 1.5,
            Rarity.RARE: 2.5,
            Rarity.EPIC: 5.0,
            Rarity.LEGENDARY: 10.0,
        }
    )


@dataclass(frozen=True, slots=True)
class ResourceTuning:
    depth_exponent: float = 1.2
    max_depth_bonus: float = 3.0
    rarity_multipliers: Mapping[Rarity, float] = field(default_factory=_default_rarity_multipliers)
    enable_risk_adjustment: bool = True
    risk_factor: float = 0.5
    enable_market_fluctuation: bool = True
    market_range: float = 0.2
    market_step: float = 0.05
    market_update_interval: float = 300.0


@dataclass(frozen=True, slots=True)
class PenaltyTuning:
    enable_death_penalty: bool = True
    base_resource_loss: float = 30.0
    max_resource_loss: float = 50.0
    base_credit_loss: float = 5.0
    max_credit_loss: float = 15.0
    enable_equipment_damage: bool = True
    base_equipment_damage: float = 10.0
    max_equipment_damage: float = 30.0
    enable_xp_loss: bool = False
    base_xp_loss: float = 5.0
    max_xp_loss: float = 15.0
    base_respawn_delay: float = 3.0
    max_respawn_delay: float = 10.0
    survival_bonus_per_minute: float = 10.0
    penalty_apply_delay: float = 0.5


@dataclass(frozen=True, slots=True)
class PacingTuning:
    target_combat_ratio: float = 0.4
    target_exploration_ratio: float = 0.5
    target_rest_ratio: float = 0.1
    deviation_threshold: float = 0.1
    adjustment_step: float = 0.05
    check_interval: float = 60.0


@dataclass(frozen=True, slots=True)
class EncounterSize:
    name: str
    probability: float
    min_enemies: int
    max_enemies: int


def _default_encounter_sizes() -> Tuple[EncounterSize, ...]:
    return (
        EncounterSize("small", 0.6, 1, 2),
        EncounterSize("medium", 0.3, 3, 5),
        EncounterSize("large", 0.1, 6, 9),
    )


@dataclass(frozen=True, slots=True)
class EncounterTuning:
    encounter_cooldown: float = 15.0
    base_spawn_chance: float = 0.1
    max_spawn_interval: float = 30.0
    tension_rise_rate: float = 0.5
    tension_decay_rate: float = 0.05
    combat_start_tension: float = 0.7
    post_combat_tension: float = 0.5
    tension_spawn_dampening: float = 0.5
    min_encounter_rate: float = 0.5
    max_encounter_rate: float = 2.0
    min_spawn_stagger: float = 0.5
    max_spawn_stagger: float = 2.0
    sizes: Tuple[EncounterSize, ...] = field(default_factory=_default_encounter_sizes)


@dataclass(frozen=True, slots=True)
class RewardTuning:
    combo_window: float = 5.0
    combo_curve: Curve | None = None
    combo_normalization: float = 10.0
    linear_combo_step: float = 0.1
    mission_reward_delay: float = 1.0


@dataclass(frozen=True, slots=True)
class AnomalyTuning:
    frequent_death_count: int = 3
    frequent_death_window: float = 300.0
    mission_stuck_attempts: int = 3
    no_progress_threshold: float = 600.0
    check_interval: float = 30.0
    report_cooldown: float = 300.0
    difficulty_relief_step: float = 0.1


@dataclass(frozen=True, slots=True)
class JourneyTuning:
    checkpoint_interval: float = 300.0
    proficiency_mission_count: int = 5


@dataclass(frozen=True, slots=True)
class SavePointTuning:
    enable_auto_save: bool = True
    auto_save_interval: float = 60.0
    depth_change_threshold: float = 10.0
    save_on_safe_zone: bool = True


@dataclass(frozen=True, slots=True)
class EngineTuning:
    difficulty: DifficultyTuning = field(default_factory=DifficultyTuning)
    enemy_scaling: EnemyScalingTuning = field(default_factory=EnemyScalingTuning)
    resources: ResourceTuning = field(default_factory=ResourceTuning)
    penalty: PenaltyTuning = field(default_factory=PenaltyTuning)
    pacing: PacingTuning = field(default_factory=PacingTuning)
    encounters: EncounterTuning = field(default_factory=EncounterTuning)
    rewards: RewardTuning = field(default_factory=RewardTuning)
    anomalies: AnomalyTuning = field(default_factory=AnomalyTuning)
    journey: JourneyTuning = field(default_factory=JourneyTuning)
    save_points: SavePointTuning = field(default_factory=SavePointTuning)
