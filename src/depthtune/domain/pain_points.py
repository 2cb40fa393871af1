"""Pain point records shared by the anomaly detector and journey reports."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict


class PainPointType(str, Enum):
    FREQUENT_DEATH = "frequent_death"
    MISSION_STUCK = "mission_stuck"
    NO_PROGRESS = "no_progress"


class PainPointSeverity(IntEnum):
    LOW = 1
    MEDIUM = 2
    HIGH = 3


@dataclass(frozen=True, slots=True)
class PainPoint:
    type: PainPointType
    severity: PainPointSeverity
    description: str
    detected_at: float = 0.0
    details: Dict[str, Any] = field(default_factory=dict)

    def to_fields(self) -> Dict[str, Any]:
        fields: Dict[str, Any] = {
            "type": self.type.value,
            "severity": self.severity.name.lower(),
            "description": self.description,
            "detected_at": self.detected_at,
        }
        fields.update(self.details)
        return fields
