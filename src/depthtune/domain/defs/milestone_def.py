"""Milestone definition structures."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

MilestoneType = Literal[
    "first_dive",
    "first_kill",
    "first_collection",
    "first_mission",
    "depth_record",
    "collection_milestone",
    "kill_milestone",
    "mission_milestone",
    "level_milestone",
    "equipment_milestone",
    "secret_discovery",
]

MILESTONE_TYPES: tuple[MilestoneType, ...] = (
    "first_dive",
    "first_kill",
    "first_collection",
    "first_mission",
    "depth_record",
    "collection_milestone",
    "kill_milestone",
    "mission_milestone",
    "level_milestone",
    "equipment_milestone",
    "secret_discovery",
)


@dataclass(frozen=True, slots=True)
class MilestoneDef:
    """A one-time achievement.

    `threshold` is the counter value (collections, kills, missions, depth)
    that triggers the milestone; "first_*" milestones use 1.
    """

    id: str
    milestone_type: MilestoneType
    title: str
    description: str = ""
    threshold: float = 1.0
    bonus_credits: int = 0
    bonus_xp: int = 0
    unlock_system_id: str | None = None
    unlock_system_name: str | None = None
