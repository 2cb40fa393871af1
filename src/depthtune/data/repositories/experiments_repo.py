"""Experiment (A/B test) definitions repository."""
from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Dict, List

from depthtune.data.errors import DataValidationError
from depthtune.data.repositories.base import RepositoryBase
from depthtune.domain.defs import ExperimentDef, ExperimentGroup, GroupAllocation

logger = logging.getLogger(__name__)

_ASSIGNABLE_GROUPS = {group.value: group for group in ExperimentGroup if group is not ExperimentGroup.NOT_ASSIGNED}


class ExperimentsRepository(RepositoryBase[ExperimentDef]):
    """Loads experiment definitions.

    Allocations that do not sum to 100 are kept; the assigner falls back to
    the control group for buckets past the last allocation.
    """

    def __init__(self, base_path=None) -> None:
        super().__init__("experiments.json", base_path)

    def _build(self, raw: dict[str, object]) -> Dict[str, ExperimentDef]:
        experiments: Dict[str, ExperimentDef] = {}
        for raw_id, payload in raw.items():
            if not isinstance(raw_id, str):
                raise DataValidationError("Experiment IDs must be strings.")
            context = f"experiment '{raw_id}'"
            data = self._require_mapping(payload, context)
            self._assert_required(data, {"name", "groups"}, context)
            groups = self._build_groups(data["groups"], f"{context} groups")
            new_only = self._require_bool(data.get("new_players_only", False), f"{context} new_players_only")
            existing_only = self._require_bool(
                data.get("existing_players_only", False), f"{context} existing_players_only"
            )
            if new_only and existing_only:
                raise DataValidationError(f"{context} cannot target only new and only existing players.")
            experiment = ExperimentDef(
                id=raw_id,
                name=self._require_str(data["name"], f"{context} name"),
                groups=groups,
                hypothesis=str(data.get("hypothesis", "")),
                active=self._require_bool(data.get("active", True), f"{context} active"),
                new_players_only=new_only,
                existing_players_only=existing_only,
                control_config=MappingProxyType(
                    dict(self._require_mapping(data.get("control_config", {}), f"{context} control_config"))
                ),
                variant_config=MappingProxyType(
                    dict(self._require_mapping(data.get("variant_config", {}), f"{context} variant_config"))
                ),
                target_metrics=tuple(self._require_str_list(data.get("target_metrics", []), f"{context} target_metrics")),
                required_sample_size=self._require_int(
                    data.get("required_sample_size", 1000), f"{context} required_sample_size"
                ),
            )
            if experiment.total_percentage != 100:
                logger.warning(
                    "Experiment '%s' allocations sum to %d%%, expected 100%%; unmatched buckets use control.",
                    raw_id,
                    experiment.total_percentage,
                )
            experiments[raw_id] = experiment
        return experiments

    def _build_groups(self, value: object, context: str) -> tuple[GroupAllocation, ...]:
        if not isinstance(value, list) or not value:
            raise DataValidationError(f"{context} must be a non-empty list.")
        allocations: List[GroupAllocation] = []
        for index, entry in enumerate(value):
            entry_context = f"{context}[{index}]"
            data = self._require_mapping(entry, entry_context)
            self._assert_required(data, {"group", "percentage"}, entry_context)
            group_name = self._require_str(data["group"], f"{entry_context} group")
            if group_name not in _ASSIGNABLE_GROUPS:
                raise DataValidationError(f"{entry_context} group must be one of {sorted(_ASSIGNABLE_GROUPS)}.")
            percentage = self._require_int(data["percentage"], f"{entry_context} percentage")
            if not 0 <= percentage <= 100:
                raise DataValidationError(f"{entry_context} percentage must be within [0, 100].")
            allocations.append(GroupAllocation(group=_ASSIGNABLE_GROUPS[group_name], percentage=percentage))
        return tuple(allocations)
