"""Depth difficulty and player skill estimation."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping

from depthtune.core.scheduler import Generation, Guard
from depthtune.domain.curves import clamp, lerp, move_towards
from depthtune.domain.defs import DifficultyTuning
from depthtune.domain.depth import (
    LAYER_DIFFICULTY_MULTIPLIERS,
    DepthLayer,
    classify_depth,
    normalize_depth,
)
from depthtune.domain.stat_window import StatWindow

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DifficultySnapshot:
    depth_difficulty: float
    skill_factor: float
    dynamic_adjustment: float
    target_skill_factor: float
    death_rate: float


class DifficultyController:
    """Single source of truth for the challenge multiplier at a depth.

    The multiplier is `base_curve(depth) * skill_factor * dynamic_adjustment`.
    Skill is re-estimated every `evaluation_interval` seconds from the last
    `window_size` outcomes; both factors move in bounded steps so one bad
    session cannot swing difficulty far.
    """

    def __init__(self, tuning: DifficultyTuning | None = None) -> None:
        self._tuning = tuning or DifficultyTuning()
        self._outcomes: StatWindow[bool] = StatWindow(self._tuning.window_size)
        self._completion_times: StatWindow[float] = StatWindow(self._tuning.window_size)
        self._skill_factor = 1.0
        self._dynamic_adjustment = 1.0
        self._target_skill_factor = 1.0
        self._last_evaluation: float | None = None
        self._generation = Generation()

    @property
    def tuning(self) -> DifficultyTuning:
        return self._tuning

    @property
    def skill_factor(self) -> float:
        return self._skill_factor

    @property
    def dynamic_adjustment(self) -> float:
        return self._dynamic_adjustment

    @property
    def target_skill_factor(self) -> float:
        return self._target_skill_factor

    @property
    def death_rate(self) -> float:
        return self._outcomes.rate_of_true()

    def base_difficulty(self, depth: object) -> float:
        n = normalize_depth(depth)
        return 1.0 + n ** self._tuning.base_exponent * self._tuning.max_depth_bonus

    def get_difficulty_at_depth(self, depth: object) -> float:
        return self.base_difficulty(depth) * self._skill_factor * self._dynamic_adjustment

    def snapshot(self, depth: object = 0.0) -> DifficultySnapshot:
        return DifficultySnapshot(
            depth_difficulty=self.base_difficulty(depth),
            skill_factor=self._skill_factor,
            dynamic_adjustment=self._dynamic_adjustment,
            target_skill_factor=self._target_skill_factor,
            death_rate=self.death_rate,
        )

    def record_death(self, depth: object = 0.0, cause: str = "unknown") -> None:
        self._outcomes.push(True)
        logger.debug("Death recorded at depth %s (%s); death rate %.2f", depth, cause, self.death_rate)

    def record_success(self, duration: float, depth: object = 0.0) -> None:
        self._outcomes.push(False)
        if isinstance(duration, (int, float)) and math.isfinite(duration) and duration >= 0:
            self._completion_times.push(float(duration))

    def evaluate(self) -> DifficultySnapshot:
        tuning = self._tuning
        death_rate = self._outcomes.rate_of_true()
        target = 1.0
        if death_rate > tuning.high_death_rate:
            target -= tuning.high_death_penalty
        elif death_rate < tuning.low_death_rate:
            target += tuning.low_death_bonus
        if self._completion_times.count:
            fast_limit = tuning.expected_completion_time * tuning.fast_completion_ratio
            if self._completion_times.mean() < fast_limit:
                target += tuning.fast_completion_bonus
        target = clamp(target, tuning.min_skill_factor, tuning.max_skill_factor)
        self._target_skill_factor = target
        self._skill_factor = clamp(
            lerp(self._skill_factor, target, tuning.smoothing_rate),
            tuning.min_skill_factor,
            tuning.max_skill_factor,
        )

        if self._skill_factor < tuning.struggling_skill:
            adjusted = move_towards(self._dynamic_adjustment, tuning.struggling_skill, tuning.decrease_step)
        elif self._skill_factor > tuning.excelling_skill:
            adjusted = move_towards(self._dynamic_adjustment, tuning.excelling_skill, tuning.increase_step)
        else:
            adjusted = move_towards(self._dynamic_adjustment, 1.0, tuning.decay_step)
        self._dynamic_adjustment = self._clamp_dynamic(adjusted)

        logger.info(
            "Difficulty evaluated: death_rate=%.2f target=%.3f skill=%.3f dynamic=%.3f",
            death_rate,
            target,
            self._skill_factor,
            self._dynamic_adjustment,
        )
        return self.snapshot()

    def tick(self, now: float) -> bool:
        """Run evaluate() when an evaluation interval has elapsed. Returns True if it ran."""
        if not self._tuning.enable_dynamic_difficulty:
            return False
        if self._last_evaluation is None:
            self._last_evaluation = now
            return False
        if now - self._last_evaluation < self._tuning.evaluation_interval:
            return False
        self._last_evaluation = now
        self.evaluate()
        return True

    def get_depth_layer(self, depth: object) -> DepthLayer:
        return classify_depth(depth)

    def get_layer_multiplier(self, layer: DepthLayer) -> float:
        return LAYER_DIFFICULTY_MULTIPLIERS[layer]

    def decrease_difficulty(self, step: float = 0.1) -> float:
        self._dynamic_adjustment = self._clamp_dynamic(self._dynamic_adjustment - abs(step))
        logger.info("Dynamic adjustment lowered to %.3f", self._dynamic_adjustment)
        return self._dynamic_adjustment

    def increase_difficulty(self, step: float = 0.1) -> float:
        self._dynamic_adjustment = self._clamp_dynamic(self._dynamic_adjustment + abs(step))
        logger.info("Dynamic adjustment raised to %.3f", self._dynamic_adjustment)
        return self._dynamic_adjustment

    def reset(self) -> None:
        """Back to neutral; continuations guarded by `guard()` become stale."""
        self._skill_factor = 1.0
        self._dynamic_adjustment = 1.0
        self._target_skill_factor = 1.0
        self._outcomes.clear()
        self._completion_times.clear()
        self._last_evaluation = None
        self._generation.bump()
        logger.info("Difficulty reset to neutral.")

    def guard(self) -> Guard:
        return self._generation.guard()

    def export_state(self) -> Dict[str, Any]:
        return {"skill_factor": self._skill_factor, "dynamic_adjustment": self._dynamic_adjustment}

    def restore_state(self, payload: Mapping[str, Any]) -> None:
        tuning = self._tuning
        self._skill_factor = clamp(
            _finite_or(payload.get("skill_factor"), 1.0), tuning.min_skill_factor, tuning.max_skill_factor
        )
        self._target_skill_factor = self._skill_factor
        self._dynamic_adjustment = self._clamp_dynamic(_finite_or(payload.get("dynamic_adjustment"), 1.0))

    def _clamp_dynamic(self, value: float) -> float:
        return clamp(value, self._tuning.min_dynamic_adjustment, self._tuning.max_dynamic_adjustment)


def _finite_or(value: object, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return default
    return float(value)
