"""Shared type aliases for the core and domain layers."""
from typing import Literal

Activity = Literal["combat", "exploration", "rest"]
ProgressKind = Literal[
    "mission_started",
    "mission_completed",
    "resource_collected",
    "enemy_defeated",
    "depth_reached",
    "equipment_upgraded",
    "activity_success",
]
SavePointKind = Literal["auto_save", "depth_change", "safe_zone", "checkpoint", "manual"]

__all__ = ["Activity", "ProgressKind", "SavePointKind"]
