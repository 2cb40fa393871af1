"""Experiment (A/B test) definition structures."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Tuple


class ExperimentGroup(str, Enum):
    NOT_ASSIGNED = "not_assigned"
    CONTROL = "control"
    VARIANT = "variant"


@dataclass(frozen=True, slots=True)
class GroupAllocation:
    group: ExperimentGroup
    percentage: int


def _empty_mapping() -> Mapping[str, Any]:
    return MappingProxyType({})


@dataclass(frozen=True, slots=True)
class ExperimentDef:
    id: str
    name: str
    groups: Tuple[GroupAllocation, ...]
    hypothesis: str = ""
    active: bool = True
    new_players_only: bool = False
    existing_players_only: bool = False
    control_config: Mapping[str, Any] = field(default_factory=_empty_mapping)
    variant_config: Mapping[str, Any] = field(default_factory=_empty_mapping)
    target_metrics: Tuple[str, ...] = ()
    required_sample_size: int = 1000

    @property
    def total_percentage(self) -> int:
        return sum(allocation.percentage for allocation in self.groups)
