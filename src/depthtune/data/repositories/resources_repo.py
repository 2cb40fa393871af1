"""Resource profiles repository."""
from __future__ import annotations

from typing import Dict

from depthtune.data.errors import DataValidationError
from depthtune.data.repositories.base import RepositoryBase
from depthtune.domain.defs import Rarity, ResourceDef

_RARITIES = {rarity.value: rarity for rarity in Rarity}


class ResourcesRepository(RepositoryBase[ResourceDef]):
    """Loads and validates collectible resource definitions."""

    def __init__(self, base_path=None) -> None:
        super().__init__("resources.json", base_path)

    def _build(self, raw: dict[str, object]) -> Dict[str, ResourceDef]:
        resources: Dict[str, ResourceDef] = {}
        for raw_id, payload in raw.items():
            if not isinstance(raw_id, str):
                raise DataValidationError("Resource IDs must be strings.")
            context = f"resource '{raw_id}'"
            data = self._require_mapping(payload, context)
            self._assert_required(data, {"name", "base_value", "rarity"}, context)
            rarity_value = self._require_str(data["rarity"], f"{context} rarity")
            if rarity_value not in _RARITIES:
                raise DataValidationError(f"{context} rarity must be one of {sorted(_RARITIES)}.")
            base_value = self._require_int(data["base_value"], f"{context} base_value")
            if base_value < 0:
                raise DataValidationError(f"{context} base_value must be >= 0.")
            resources[raw_id] = ResourceDef(
                id=raw_id,
                name=self._require_str(data["name"], f"{context} name"),
                base_value=base_value,
                rarity=_RARITIES[rarity_value],
                min_depth=self._require_non_negative(data.get("min_depth", 0.0), f"{context} min_depth"),
                weight=self._require_non_negative(data.get("weight", 1.0), f"{context} weight"),
            )
        return resources
