"""Deterministic A/B cohort assignment."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from depthtune.core.stable_hash import stable_bucket
from depthtune.domain.defs import ExperimentDef, ExperimentGroup
from depthtune.services.collaborators import Collaborators, call_safely

logger = logging.getLogger(__name__)

_EMPTY: Mapping[str, Any] = MappingProxyType({})


def assign_group(player_id: str, experiment: ExperimentDef) -> ExperimentGroup:
    """Bucket `player_id` into 0..99 and walk the allocations cumulatively."""
    bucket = stable_bucket(f"{player_id}{experiment.id}", 100)
    cumulative = 0
    for allocation in experiment.groups:
        cumulative += allocation.percentage
        if bucket < cumulative:
            return allocation.group
    return ExperimentGroup.CONTROL


@dataclass(frozen=True, slots=True)
class ExperimentMetric:
    name: str
    control_value: float
    variant_value: float
    control_samples: int
    variant_samples: int

    @property
    def lift(self) -> float | None:
        if self.control_value == 0:
            return None
        return (self.variant_value - self.control_value) / self.control_value


@dataclass(frozen=True, slots=True)
class ExperimentReport:
    experiment_id: str
    name: str
    control_group_size: int
    variant_group_size: int
    required_sample_size: int
    metrics: Dict[str, ExperimentMetric] = field(default_factory=dict)

    @property
    def sample_complete(self) -> bool:
        return self.control_group_size + self.variant_group_size >= self.required_sample_size


class ExperimentAssigner:
    """Keeps per-player assignments and metric samples for the loaded experiments."""

    def __init__(self, experiments: Iterable[ExperimentDef] = (), *, collaborators: Collaborators | None = None) -> None:
        self._experiments: Dict[str, ExperimentDef] = {experiment.id: experiment for experiment in experiments}
        self._collaborators = collaborators or Collaborators()
        self._assignments: Dict[Tuple[str, str], ExperimentGroup] = {}
        self._current_player: str | None = None
        self._samples: Dict[Tuple[str, str, ExperimentGroup], List[float]] = {}

    @property
    def current_player(self) -> str | None:
        return self._current_player

    def get_experiment(self, test_id: str) -> ExperimentDef | None:
        return self._experiments.get(test_id)

    def active_experiments(self) -> List[ExperimentDef]:
        return [self._experiments[key] for key in sorted(self._experiments) if self._experiments[key].active]

    def assign_group(self, player_id: str, test_id: str) -> ExperimentGroup:
        experiment = self._experiments.get(test_id)
        if experiment is None:
            logger.warning("Unknown experiment '%s'.", test_id)
            return ExperimentGroup.NOT_ASSIGNED
        key = (player_id, test_id)
        group = self._assignments.get(key)
        if group is None:
            group = assign_group(player_id, experiment)
            self._assignments[key] = group
            call_safely(
                "Analytics log",
                self._collaborators.analytics.log,
                "experiment_assigned",
                {"test_id": test_id, "player_id": player_id, "group": group.value},
            )
        return group

    def assign_all(self, player_id: str, *, is_new_player: bool) -> Dict[str, ExperimentGroup]:
        """Assign the player to every active experiment they are eligible for."""
        self._current_player = player_id
        assigned: Dict[str, ExperimentGroup] = {}
        for experiment in self.active_experiments():
            if experiment.new_players_only and not is_new_player:
                continue
            if experiment.existing_players_only and is_new_player:
                continue
            assigned[experiment.id] = self.assign_group(player_id, experiment.id)
        return assigned

    def restore_assignments(self, player_id: str, assignments: Mapping[str, ExperimentGroup]) -> None:
        """Reinstate persisted assignments; recomputation would give the same answer."""
        self._current_player = player_id
        for test_id, group in assignments.items():
            self._assignments[(player_id, test_id)] = group

    def assignments_for(self, player_id: str) -> Dict[str, ExperimentGroup]:
        return {test_id: group for (player, test_id), group in self._assignments.items() if player == player_id}

    def get_player_group(self, test_id: str) -> ExperimentGroup:
        if self._current_player is None:
            return ExperimentGroup.NOT_ASSIGNED
        return self._assignments.get((self._current_player, test_id), ExperimentGroup.NOT_ASSIGNED)

    def get_config(self, test_id: str) -> Mapping[str, Any]:
        """Parameters for the current player's group, or an empty mapping."""
        experiment = self._experiments.get(test_id)
        group = self.get_player_group(test_id)
        if experiment is None or group is ExperimentGroup.NOT_ASSIGNED:
            logger.info("No assignment available for experiment '%s'.", test_id)
            call_safely(
                "Assignment notification",
                self._collaborators.notifications.notify,
                "assignment unavailable",
                kind="warning",
            )
            return _EMPTY
        return experiment.variant_config if group is ExperimentGroup.VARIANT else experiment.control_config

    def log_metric(self, test_id: str, metric_name: str, value: Any) -> None:
        group = self.get_player_group(test_id)
        if group is ExperimentGroup.NOT_ASSIGNED:
            return
        call_safely(
            "Analytics log",
            self._collaborators.analytics.log,
            "experiment_metric",
            {"test_id": test_id, "group": group.value, "metric": metric_name, "value": value},
        )
        if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
            self._samples.setdefault((test_id, metric_name, group), []).append(float(value))

    def log_conversion(self, test_id: str, conversion_event: str) -> None:
        self.log_metric(test_id, "conversion", conversion_event)
        self.log_metric(test_id, f"conversion:{conversion_event}", 1.0)

    def generate_report(self, test_id: str) -> ExperimentReport | None:
        experiment = self._experiments.get(test_id)
        if experiment is None:
            return None
        groups = [group for (_, assigned_test), group in self._assignments.items() if assigned_test == test_id]
        metric_names = sorted({metric for (sample_test, metric, _) in self._samples if sample_test == test_id})
        metrics: Dict[str, ExperimentMetric] = {}
        for metric in metric_names:
            control = self._samples.get((test_id, metric, ExperimentGroup.CONTROL), [])
            variant = self._samples.get((test_id, metric, ExperimentGroup.VARIANT), [])
            metrics[metric] = ExperimentMetric(
                name=metric,
                control_value=_mean(control),
                variant_value=_mean(variant),
                control_samples=len(control),
                variant_samples=len(variant),
            )
        return ExperimentReport(
            experiment_id=test_id,
            name=experiment.name,
            control_group_size=groups.count(ExperimentGroup.CONTROL),
            variant_group_size=groups.count(ExperimentGroup.VARIANT),
            required_sample_size=experiment.required_sample_size,
            metrics=metrics,
        )


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0
