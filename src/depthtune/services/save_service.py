"""Serialization helpers for persisted player profiles."""
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Set, Tuple

from depthtune.core.rng import RNG, RNGStatePayload
from depthtune.data.repositories import ExperimentsRepository, MilestonesRepository
from depthtune.domain.defs import ExperimentGroup
from depthtune.domain.journey import JourneyStage
from depthtune.domain.state import ProfileState
from depthtune.services.errors import SaveLoadError

SavePayload = Dict[str, Any]

_STAGES = {stage.label: stage for stage in JourneyStage}
_GROUPS = {group.value: group for group in ExperimentGroup}


class ProfileSaveService:
    """Converts ProfileState (and optionally the engine RNG) to/from a versioned payload."""

    SAVE_VERSION = 1

    def __init__(
        self,
        *,
        milestones_repo: MilestonesRepository | None = None,
        experiments_repo: ExperimentsRepository | None = None,
    ) -> None:
        self._milestones_repo = milestones_repo
        self._experiments_repo = experiments_repo

    def serialize(self, state: ProfileState, rng: RNG | None = None) -> SavePayload:
        """Return a JSON-serializable payload."""
        payload: SavePayload = {
            "save_version": self.SAVE_VERSION,
            "metadata": {
                "player_id": state.player_id,
                "journey_stage": state.journey_stage.label,
                "saved_at": datetime.now(timezone.utc).isoformat(),
            },
            "state": {
                "player_id": state.player_id,
                "skill_factor": state.skill_factor,
                "dynamic_adjustment": state.dynamic_adjustment,
                "achieved_milestones": sorted(state.achieved_milestones),
                "experiment_assignments": {
                    test_id: group.value for test_id, group in sorted(state.experiment_assignments.items())
                },
                "journey_stage": state.journey_stage.label,
                "stage_entry_times": {
                    stage.label: timestamp for stage, timestamp in sorted(state.stage_entry_times.items())
                },
                "market_factors": dict(sorted(state.market_factors.items())),
                "economy_epoch": state.economy_epoch,
                "deepest_depth": state.deepest_depth,
                "missions_completed": state.missions_completed,
                "first_seen_at": state.first_seen_at,
                "dives_started": state.dives_started,
            },
        }
        if rng is not None:
            payload["rng"] = {"seed": rng.seed, **rng.export_state()}
        return payload

    def deserialize(self, payload: Mapping[str, Any]) -> Tuple[ProfileState, RNG | None]:
        """Rehydrate a ProfileState (and RNG, when the payload carries one)."""
        if not isinstance(payload, Mapping):
            raise SaveLoadError("Save data must be a JSON object.")
        version = payload.get("save_version")
        if version != self.SAVE_VERSION:
            raise SaveLoadError(f"Unsupported save version: {version!r}.")
        state_payload = payload.get("state")
        if not isinstance(state_payload, Mapping):
            raise SaveLoadError("Save data is missing the state section.")

        state = ProfileState(player_id=self._require_str(state_payload.get("player_id"), "state.player_id"))
        state.skill_factor = self._require_number(state_payload.get("skill_factor"), "state.skill_factor")
        state.dynamic_adjustment = self._require_number(
            state_payload.get("dynamic_adjustment"), "state.dynamic_adjustment"
        )
        state.achieved_milestones = self._coerce_milestones(state_payload.get("achieved_milestones", []))
        state.experiment_assignments = self._coerce_assignments(state_payload.get("experiment_assignments", {}))
        state.journey_stage = self._require_stage(state_payload.get("journey_stage"), "state.journey_stage")
        state.stage_entry_times = self._coerce_entry_times(state_payload.get("stage_entry_times", {}))
        state.market_factors = self._coerce_number_dict(state_payload.get("market_factors", {}), "state.market_factors")
        state.economy_epoch = self._coerce_non_negative_int(
            state_payload.get("economy_epoch"), "state.economy_epoch", default=0
        )
        state.deepest_depth = max(
            0.0, self._require_number(state_payload.get("deepest_depth", 0.0), "state.deepest_depth")
        )
        state.missions_completed = self._coerce_non_negative_int(
            state_payload.get("missions_completed"), "state.missions_completed", default=0
        )
        state.first_seen_at = self._require_number(state_payload.get("first_seen_at", 0.0), "state.first_seen_at")
        state.dives_started = self._coerce_non_negative_int(
            state_payload.get("dives_started"), "state.dives_started", default=0
        )
        self._validate_stage_consistency(state)

        rng_payload = payload.get("rng")
        rng: RNG | None = None
        if rng_payload is not None:
            rng_mapping = self._require_dict(rng_payload, "rng")
            rng = RNG(self._require_int(rng_mapping.get("seed"), "rng.seed"))
            try:
                rng.restore_state(self._coerce_rng_payload(rng_mapping))
            except ValueError as exc:
                raise SaveLoadError(f"Invalid RNG state: {exc}") from exc
        return state, rng

    def _coerce_milestones(self, value: Any) -> Set[str]:
        if not isinstance(value, list):
            raise SaveLoadError("state.achieved_milestones must be a list.")
        milestones: Set[str] = set()
        for entry in value:
            milestone_id = self._require_str(entry, "state.achieved_milestones entry")
            if self._milestones_repo is not None and self._milestones_repo.find(milestone_id) is None:
                raise SaveLoadError(f"Save references unknown milestone: {milestone_id}")
            milestones.add(milestone_id)
        return milestones

    def _coerce_assignments(self, value: Any) -> Dict[str, ExperimentGroup]:
        mapping = self._require_dict(value, "state.experiment_assignments")
        assignments: Dict[str, ExperimentGroup] = {}
        for test_id, group_value in mapping.items():
            if not isinstance(test_id, str):
                raise SaveLoadError("state.experiment_assignments keys must be strings.")
            if not isinstance(group_value, str) or group_value not in _GROUPS:
                raise SaveLoadError(f"state.experiment_assignments.{test_id} has invalid group {group_value!r}.")
            if self._experiments_repo is not None and self._experiments_repo.find(test_id) is None:
                raise SaveLoadError(f"Save references unknown experiment: {test_id}")
            assignments[test_id] = _GROUPS[group_value]
        return assignments

    def _coerce_entry_times(self, value: Any) -> Dict[JourneyStage, float]:
        mapping = self._require_dict(value, "state.stage_entry_times")
        return {
            self._require_stage(label, "state.stage_entry_times key"): self._require_number(
                timestamp, f"state.stage_entry_times.{label}"
            )
            for label, timestamp in mapping.items()
        }

    def _coerce_number_dict(self, value: Any, context: str) -> Dict[str, float]:
        mapping = self._require_dict(value, context)
        result: Dict[str, float] = {}
        for key, entry in mapping.items():
            if not isinstance(key, str):
                raise SaveLoadError(f"{context} keys must be strings.")
            result[key] = self._require_number(entry, f"{context}.{key}")
        return result

    @staticmethod
    def _validate_stage_consistency(state: ProfileState) -> None:
        later = [stage for stage in state.stage_entry_times if stage > state.journey_stage]
        if later:
            raise SaveLoadError(
                f"Stage entry times include {later[0].label} beyond current stage {state.journey_stage.label}."
            )

    def _coerce_rng_payload(self, payload: Mapping[str, Any]) -> RNGStatePayload:
        version = self._require_int(payload.get("version"), "rng.version")
        state_values = payload.get("state")
        if not isinstance(state_values, list):
            raise SaveLoadError("Invalid RNG state payload.")
        return {"version": version, "state": state_values, "gauss": payload.get("gauss")}

    @staticmethod
    def _require_stage(value: Any, context: str) -> JourneyStage:
        if not isinstance(value, str) or value not in _STAGES:
            raise SaveLoadError(f"{context} has invalid journey stage {value!r}.")
        return _STAGES[value]

    @staticmethod
    def _require_str(value: Any, context: str) -> str:
        if not isinstance(value, str) or not value:
            raise SaveLoadError(f"{context} must be a non-empty string.")
        return value

    @staticmethod
    def _require_int(value: Any, context: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise SaveLoadError(f"{context} must be an integer.")
        return value

    @staticmethod
    def _require_number(value: Any, context: str) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise SaveLoadError(f"{context} must be a finite number.")
        return float(value)

    def _coerce_non_negative_int(self, value: Any, context: str, *, default: int) -> int:
        if value is None:
            return default
        value_int = self._require_int(value, context)
        if value_int < 0:
            raise SaveLoadError(f"{context} must be a non-negative integer.")
        return value_int

    @staticmethod
    def _require_dict(value: Any, context: str) -> Dict[str, Any]:
        if not isinstance(value, Mapping):
            raise SaveLoadError(f"{context} must be an object.")
        return dict(value)
