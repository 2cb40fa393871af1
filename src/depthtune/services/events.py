"""Engine events and the listener registry that fans them out."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

from depthtune.core.types import SavePointKind
from depthtune.domain.journey import JourneyStage
from depthtune.domain.pain_points import PainPoint

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class EngineEvent:
    """Base class for engine events."""


@dataclass(slots=True)
class CombatStartedEvent(EngineEvent):
    time: float
    tension: float


@dataclass(slots=True)
class CombatEndedEvent(EngineEvent):
    time: float
    duration: float


@dataclass(slots=True)
class EncounterStartedEvent(EngineEvent):
    encounter_id: int
    size: str
    enemy_count: int
    time: float


@dataclass(slots=True)
class EncounterRateChangedEvent(EngineEvent):
    encounter_rate: float
    reason: str


@dataclass(slots=True)
class PainPointDetectedEvent(EngineEvent):
    pain_point: PainPoint


@dataclass(slots=True)
class StageChangedEvent(EngineEvent):
    previous: JourneyStage
    current: JourneyStage
    time: float


@dataclass(slots=True)
class MilestoneReachedEvent(EngineEvent):
    milestone_id: str
    title: str
    bonus_credits: int
    bonus_xp: int
    time: float


@dataclass(slots=True)
class RewardGrantedEvent(EngineEvent):
    reason: str
    credits: int
    xp: int
    multiplier: float = 1.0


@dataclass(slots=True)
class SavePointRequest(EngineEvent):
    kind: SavePointKind
    time: float
    depth: float
    details: Dict[str, Any] = field(default_factory=dict)


Listener = Callable[[EngineEvent], None]


class EventListeners:
    """Ordered listener registry; a failing listener is logged and skipped."""

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, event: EngineEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Listener failed while handling %s.", type(event).__name__)
