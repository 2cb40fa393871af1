"""Engine tuning repository (tuning.json)."""
from __future__ import annotations

import logging
from dataclasses import MISSING, fields
from types import MappingProxyType
from typing import Any, Callable, Dict, List

from depthtune.data.errors import DataValidationError
from depthtune.data.repositories.base import RepositoryBase
from depthtune.domain.curves import Curve, build_curve
from depthtune.domain.defs import (
    AnomalyTuning,
    DifficultyTuning,
    EliteModifiers,
    EncounterSize,
    EncounterTuning,
    EnemyScalingTuning,
    EngineTuning,
    JourneyTuning,
    PacingTuning,
    PenaltyTuning,
    Rarity,
    ResourceTuning,
    RewardTuning,
    SavePointTuning,
)

logger = logging.getLogger(__name__)

# Curves that scale a base stat fall back to "no change"; curves that map
# onto a [0, 1] blend fall back to identity.
_MULTIPLIER_CURVES = ("health_curve", "damage_curve", "speed_curve", "attack_speed_curve", "spawn_rate_curve")
_NORMALIZED_CURVES = ("elite_chance_curve",)


class TuningRepository(RepositoryBase[EngineTuning]):
    """Loads the single EngineTuning record; every omitted key keeps its default."""

    TUNING_KEY = "engine"

    def __init__(self, base_path=None) -> None:
        super().__init__("tuning.json", base_path)

    def get_tuning(self) -> EngineTuning:
        return self.get(self.TUNING_KEY)

    def _build(self, raw: dict[str, object]) -> Dict[str, EngineTuning]:
        builders: Dict[str, Callable[[dict[str, object]], Any]] = {
            "difficulty": self._build_difficulty,
            "enemy_scaling": self._build_enemy_scaling,
            "resources": self._build_resources,
            "penalty": lambda data: self._build_scalars(PenaltyTuning, data, "tuning.penalty"),
            "pacing": self._build_pacing,
            "encounters": self._build_encounters,
            "rewards": self._build_rewards,
            "anomalies": lambda data: self._build_scalars(AnomalyTuning, data, "tuning.anomalies"),
            "journey": lambda data: self._build_scalars(JourneyTuning, data, "tuning.journey"),
            "save_points": lambda data: self._build_scalars(SavePointTuning, data, "tuning.save_points"),
        }
        for unknown in sorted(set(raw) - set(builders)):
            logger.warning("Ignoring unknown tuning section '%s'.", unknown)
        sections: Dict[str, Any] = {}
        for name, builder in builders.items():
            if name in raw:
                sections[name] = builder(self._require_mapping(raw[name], f"tuning.{name}"))
        return {self.TUNING_KEY: EngineTuning(**sections)}

    def _build_difficulty(self, data: dict[str, object]) -> DifficultyTuning:
        tuning = self._build_scalars(DifficultyTuning, data, "tuning.difficulty")
        if tuning.window_size < 1:
            raise DataValidationError("tuning.difficulty window_size must be >= 1.")
        if tuning.evaluation_interval <= 0:
            raise DataValidationError("tuning.difficulty evaluation_interval must be > 0.")
        if tuning.min_skill_factor > tuning.max_skill_factor:
            raise DataValidationError("tuning.difficulty min_skill_factor exceeds max_skill_factor.")
        if tuning.min_dynamic_adjustment > tuning.max_dynamic_adjustment:
            raise DataValidationError("tuning.difficulty min_dynamic_adjustment exceeds max_dynamic_adjustment.")
        return tuning

    def _build_pacing(self, data: dict[str, object]) -> PacingTuning:
        tuning = self._build_scalars(PacingTuning, data, "tuning.pacing")
        if tuning.check_interval <= 0:
            raise DataValidationError("tuning.pacing check_interval must be > 0.")
        return tuning

    def _build_enemy_scaling(self, data: dict[str, object]) -> EnemyScalingTuning:
        context = "tuning.enemy_scaling"
        overrides: Dict[str, Any] = {}
        for name in _MULTIPLIER_CURVES:
            if name in data:
                overrides[name] = build_curve(data[name], fallback=Curve.constant(1.0), context=f"{context}.{name}")
        for name in _NORMALIZED_CURVES:
            if name in data:
                overrides[name] = build_curve(data[name], fallback=Curve.identity(), context=f"{context}.{name}")
        if "elite" in data:
            overrides["elite"] = self._build_scalars(
                EliteModifiers, self._require_mapping(data["elite"], f"{context}.elite"), f"{context}.elite"
            )
        return self._build_scalars(EnemyScalingTuning, data, context, overrides)

    def _build_resources(self, data: dict[str, object]) -> ResourceTuning:
        context = "tuning.resources"
        overrides: Dict[str, Any] = {}
        if "rarity_multipliers" in data:
            raw_multipliers = self._require_mapping(data["rarity_multipliers"], f"{context}.rarity_multipliers")
            multipliers = dict(ResourceTuning().rarity_multipliers)
            for rarity in Rarity:
                if rarity.value in raw_multipliers:
                    multipliers[rarity] = self._require_non_negative(
                        raw_multipliers[rarity.value], f"{context}.rarity_multipliers.{rarity.value}"
                    )
            overrides["rarity_multipliers"] = MappingProxyType(multipliers)
        tuning = self._build_scalars(ResourceTuning, data, context, overrides)
        if not 0.0 <= tuning.market_range < 1.0:
            raise DataValidationError(f"{context} market_range must be within [0, 1).")
        return tuning

    def _build_encounters(self, data: dict[str, object]) -> EncounterTuning:
        context = "tuning.encounters"
        overrides: Dict[str, Any] = {}
        if "sizes" in data:
            raw_sizes = data["sizes"]
            if not isinstance(raw_sizes, list) or not raw_sizes:
                raise DataValidationError(f"{context}.sizes must be a non-empty list.")
            sizes: List[EncounterSize] = []
            for index, entry in enumerate(raw_sizes):
                entry_context = f"{context}.sizes[{index}]"
                size = self._require_mapping(entry, entry_context)
                self._assert_required(size, {"name", "probability", "min_enemies", "max_enemies"}, entry_context)
                min_enemies = self._require_int(size["min_enemies"], f"{entry_context} min_enemies")
                max_enemies = self._require_int(size["max_enemies"], f"{entry_context} max_enemies")
                if min_enemies < 1 or max_enemies < min_enemies:
                    raise DataValidationError(f"{entry_context} needs 1 <= min_enemies <= max_enemies.")
                sizes.append(
                    EncounterSize(
                        name=self._require_str(size["name"], f"{entry_context} name"),
                        probability=self._require_non_negative(size["probability"], f"{entry_context} probability"),
                        min_enemies=min_enemies,
                        max_enemies=max_enemies,
                    )
                )
            overrides["sizes"] = tuple(sizes)
        return self._build_scalars(EncounterTuning, data, context, overrides)

    def _build_rewards(self, data: dict[str, object]) -> RewardTuning:
        overrides: Dict[str, Any] = {}
        if data.get("combo_curve") is not None:
            overrides["combo_curve"] = build_curve(
                data["combo_curve"], fallback=Curve.identity(), context="tuning.rewards.combo_curve"
            )
        tuning = self._build_scalars(RewardTuning, data, "tuning.rewards", overrides)
        if tuning.combo_normalization <= 0:
            raise DataValidationError("tuning.rewards combo_normalization must be > 0.")
        if tuning.combo_window < 0 or tuning.mission_reward_delay < 0:
            raise DataValidationError("tuning.rewards combo_window and mission_reward_delay must be >= 0.")
        return tuning

    def _build_scalars(
        self,
        cls: type,
        data: dict[str, object],
        context: str,
        overrides: Dict[str, Any] | None = None,
    ) -> Any:
        """Build `cls` from the bool/int/float keys in `data`, typed by each field's default."""
        kwargs: Dict[str, Any] = dict(overrides or {})
        known = set()
        for field_info in fields(cls):
            known.add(field_info.name)
            if field_info.name in kwargs or field_info.name not in data:
                continue
            default = field_info.default
            if default is MISSING:
                continue
            value = data[field_info.name]
            key_context = f"{context} {field_info.name}"
            if isinstance(default, bool):
                kwargs[field_info.name] = self._require_bool(value, key_context)
            elif isinstance(default, int):
                kwargs[field_info.name] = self._require_int(value, key_context)
            elif isinstance(default, float):
                kwargs[field_info.name] = self._require_number(value, key_context)
        for unknown in sorted(set(data) - known):
            logger.warning("Ignoring unknown tuning key '%s' in %s.", unknown, context)
        return cls(**kwargs)
