"""Player journey stages and their event triggers."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Tuple

from depthtune.domain.pain_points import PainPoint


class JourneyStage(IntEnum):
    DISCOVERY = 0
    ONBOARDING = 1
    ENGAGEMENT = 2
    PROFICIENCY = 3
    MASTERY = 4
    CHAMPION = 5

    @property
    def label(self) -> str:
        return self.name.lower()


class JourneyEventType(str, Enum):
    FIRST_LAUNCH = "first_launch"
    TUTORIAL_COMPLETE = "tutorial_complete"
    FIRST_DIVE = "first_dive"
    FIRST_COLLECTION = "first_collection"
    FIRST_KILL = "first_kill"
    FIRST_MISSION_COMPLETE = "first_mission_complete"
    FIFTH_MISSION_COMPLETE = "fifth_mission_complete"
    FIRST_BOSS_DEFEATED = "first_boss_defeated"
    MISSION_COMPLETE = "mission_complete"
    ACTIVITY_SUCCESS = "activity_success"
    NEW_DEPTH_RECORD = "new_depth_record"
    PLAYER_DEATH = "player_death"
    STAGE_TRANSITION = "stage_transition"
    SYSTEM_UNLOCKED = "system_unlocked"
    EQUIPMENT_UPGRADED = "equipment_upgraded"
    ALL_CONTENT_COMPLETE = "all_content_complete"


# event -> (stage the player must be in, stage entered)
STAGE_TRIGGERS: Dict[JourneyEventType, Tuple[JourneyStage, JourneyStage]] = {
    JourneyEventType.TUTORIAL_COMPLETE: (JourneyStage.DISCOVERY, JourneyStage.ONBOARDING),
    JourneyEventType.FIRST_MISSION_COMPLETE: (JourneyStage.ONBOARDING, JourneyStage.ENGAGEMENT),
    JourneyEventType.FIFTH_MISSION_COMPLETE: (JourneyStage.ENGAGEMENT, JourneyStage.PROFICIENCY),
    JourneyEventType.FIRST_BOSS_DEFEATED: (JourneyStage.PROFICIENCY, JourneyStage.MASTERY),
    JourneyEventType.ALL_CONTENT_COMPLETE: (JourneyStage.MASTERY, JourneyStage.CHAMPION),
}

STAGE_PROGRESS: Dict[JourneyStage, float] = {
    JourneyStage.DISCOVERY: 0.1,
    JourneyStage.ONBOARDING: 0.25,
    JourneyStage.ENGAGEMENT: 0.5,
    JourneyStage.PROFICIENCY: 0.75,
    JourneyStage.MASTERY: 0.9,
    JourneyStage.CHAMPION: 1.0,
}

STAGE_RECOMMENDATIONS: Dict[JourneyStage, Tuple[str, ...]] = {
    JourneyStage.DISCOVERY: ("Finish the tutorial",),
    JourneyStage.ONBOARDING: ("Try a different kind of mission", "Explore down to 30 m"),
    JourneyStage.ENGAGEMENT: ("Upgrade your mech equipment", "Push down to 50 m"),
    JourneyStage.PROFICIENCY: ("Take on a boss", "Collect rare resources"),
    JourneyStage.MASTERY: ("Explore the abyss", "Complete an extreme mission"),
    JourneyStage.CHAMPION: (),
}


def next_stage(current: JourneyStage, event: JourneyEventType) -> JourneyStage:
    """Stage after `event`; never lower than `current`."""
    trigger = STAGE_TRIGGERS.get(event)
    if trigger is None:
        return current
    required, entered = trigger
    if current == required and entered > current:
        return entered
    return current


@dataclass(frozen=True, slots=True)
class JourneyEvent:
    event_type: JourneyEventType
    description: str
    timestamp: float
    stage: JourneyStage
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class JourneyCheckpoint:
    timestamp: float
    session_time: float
    depth: float
    missions_completed: int
    resources_collected: int
    enemies_defeated: int
    deepest_depth: float


@dataclass(frozen=True, slots=True)
class JourneyReport:
    player_id: str
    current_stage: JourneyStage
    total_play_time: float
    total_checkpoints: int
    missions_completed: int
    deepest_depth: float
    death_count: int
    stage_progress: float
    recommendations: List[str]
    pain_points: List[PainPoint]
