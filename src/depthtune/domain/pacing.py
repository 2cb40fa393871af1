"""Session pacing accumulators."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from depthtune.core.types import Activity
from depthtune.domain.curves import clamp01


@dataclass(frozen=True, slots=True)
class PaceTargets:
    combat: float = 0.4
    exploration: float = 0.5
    rest: float = 0.1


def closeness(actual: float, target: float) -> float:
    """1.0 when `actual` hits `target`, falling linearly with relative deviation."""
    if target <= 0:
        return 1.0 if actual <= 0 else 0.0
    return 1.0 - abs(actual - target) / target


@dataclass(slots=True)
class SessionPaceRecord:
    """Time and activity counters for one session.

    Created at session start, finalized (ratios and pace score) at session
    end, then logged and discarded.
    """

    start_time: float
    start_depth: float = 0.0
    end_time: float | None = None
    end_depth: float = 0.0
    combat_time: float = 0.0
    exploration_time: float = 0.0
    rest_time: float = 0.0
    combat_count: int = 0
    enemies_defeated: int = 0
    resources_collected: int = 0
    missions_completed: int = 0
    combat_ratio: float = 0.0
    exploration_ratio: float = 0.0
    rest_ratio: float = 0.0
    pace_score: float = 0.0

    @property
    def total_time(self) -> float:
        return self.combat_time + self.exploration_time + self.rest_time

    @property
    def finalized(self) -> bool:
        return self.end_time is not None

    def accumulate(self, activity: Activity, dt: float) -> None:
        if dt != dt or dt <= 0:
            return
        if activity == "combat":
            self.combat_time += dt
        elif activity == "rest":
            self.rest_time += dt
        else:
            self.exploration_time += dt

    def ratios(self) -> tuple[float, float, float]:
        total = self.total_time
        if total <= 0:
            return 0.0, 0.0, 0.0
        return self.combat_time / total, self.exploration_time / total, self.rest_time / total

    def finalize(self, end_time: float, end_depth: float, targets: PaceTargets) -> None:
        self.end_time = end_time
        self.end_depth = end_depth
        self.combat_ratio, self.exploration_ratio, self.rest_ratio = self.ratios()
        combat_score = closeness(self.combat_ratio, targets.combat)
        exploration_score = closeness(self.exploration_ratio, targets.exploration)
        self.pace_score = clamp01((combat_score + exploration_score) / 2.0)

    def to_fields(self) -> Dict[str, Any]:
        return {
            "duration": (self.end_time or self.start_time) - self.start_time,
            "start_depth": self.start_depth,
            "end_depth": self.end_depth,
            "combat_time": self.combat_time,
            "exploration_time": self.exploration_time,
            "rest_time": self.rest_time,
            "combat_count": self.combat_count,
            "enemies_defeated": self.enemies_defeated,
            "resources_collected": self.resources_collected,
            "missions_completed": self.missions_completed,
            "combat_ratio": self.combat_ratio,
            "exploration_ratio": self.exploration_ratio,
            "rest_ratio": self.rest_ratio,
            "pace_score": self.pace_score,
        }
