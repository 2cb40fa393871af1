"""Death context and the immutable penalty report."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict

from depthtune.domain.insurance import InsuranceTier


@dataclass(slots=True)
class DeathContext:
    """What the gameplay layer knows about a death."""

    depth: float
    cause: str = "unknown"
    session_duration: float = 0.0
    player_level: int = 1
    equipment_score: float = 0.0
    mission_id: str | None = None


@dataclass(frozen=True, slots=True)
class DeathReport:
    """Computed result of one penalty calculation. Percentages are 0-100."""

    no_penalty: bool
    depth: float
    cause: str
    session_duration: float
    penalty_multiplier: float = 0.0
    resource_loss_percent: float = 0.0
    credit_loss_percent: float = 0.0
    equipment_damage_percent: float = 0.0
    xp_loss_percent: float = 0.0
    respawn_delay: float = 0.0
    insurance_applied: bool = False
    insurance_tier: InsuranceTier = InsuranceTier.NONE
    survival_bonus_xp: int = 0

    def to_fields(self) -> Dict[str, Any]:
        fields = asdict(self)
        fields["insurance_tier"] = self.insurance_tier.value
        return fields
