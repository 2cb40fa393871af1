"""Persistent per-player state."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Set

from depthtune.domain.defs import ExperimentGroup
from depthtune.domain.journey import JourneyStage


@dataclass
class ProfileState:
    """Everything that must survive between sessions for one player."""

    player_id: str
    skill_factor: float = 1.0
    dynamic_adjustment: float = 1.0
    achieved_milestones: Set[str] = field(default_factory=set)
    experiment_assignments: Dict[str, ExperimentGroup] = field(default_factory=dict)
    journey_stage: JourneyStage = JourneyStage.DISCOVERY
    stage_entry_times: Dict[JourneyStage, float] = field(default_factory=dict)
    market_factors: Dict[str, float] = field(default_factory=dict)
    economy_epoch: int = 0
    deepest_depth: float = 0.0
    missions_completed: int = 0
    first_seen_at: float = 0.0
    dives_started: int = 0
