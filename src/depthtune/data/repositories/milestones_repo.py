"""Milestone definitions repository."""
from __future__ import annotations

from typing import Dict, List

from depthtune.data.errors import DataValidationError
from depthtune.data.repositories.base import RepositoryBase
from depthtune.domain.defs import MILESTONE_TYPES, MilestoneDef


class MilestonesRepository(RepositoryBase[MilestoneDef]):
    """Loads one-time achievement definitions."""

    def __init__(self, base_path=None) -> None:
        super().__init__("milestones.json", base_path)

    def _build(self, raw: dict[str, object]) -> Dict[str, MilestoneDef]:
        milestones: Dict[str, MilestoneDef] = {}
        for raw_id, payload in raw.items():
            if not isinstance(raw_id, str):
                raise DataValidationError("Milestone IDs must be strings.")
            context = f"milestone '{raw_id}'"
            data = self._require_mapping(payload, context)
            self._assert_required(data, {"type", "title"}, context)
            milestone_type = self._require_str(data["type"], f"{context} type")
            if milestone_type not in MILESTONE_TYPES:
                raise DataValidationError(f"{context} type must be one of {list(MILESTONE_TYPES)}.")
            unlock_id = data.get("unlock_system_id")
            unlock_name = data.get("unlock_system_name")
            milestones[raw_id] = MilestoneDef(
                id=raw_id,
                milestone_type=milestone_type,  # type: ignore[arg-type]
                title=self._require_str(data["title"], f"{context} title"),
                description=str(data.get("description", "")),
                threshold=self._require_non_negative(data.get("threshold", 1), f"{context} threshold"),
                bonus_credits=self._require_int(data.get("bonus_credits", 0), f"{context} bonus_credits"),
                bonus_xp=self._require_int(data.get("bonus_xp", 0), f"{context} bonus_xp"),
                unlock_system_id=None if unlock_id is None else self._require_str(unlock_id, f"{context} unlock_system_id"),
                unlock_system_name=None
                if unlock_name is None
                else self._require_str(unlock_name, f"{context} unlock_system_name"),
            )
        return milestones

    def by_type(self, milestone_type: str) -> List[MilestoneDef]:
        """Milestones of one type, ordered by threshold then id."""
        return sorted(
            (milestone for milestone in self.all() if milestone.milestone_type == milestone_type),
            key=lambda milestone: (milestone.threshold, milestone.id),
        )
