"""Domain definition exports."""

from .boss_def import BossDef, BossPhaseDef
from .enemy_def import EnemyProfileDef, PatrollingEnemyDef
from .experiment_def import ExperimentDef, ExperimentGroup, GroupAllocation
from .milestone_def import MILESTONE_TYPES, MilestoneDef, MilestoneType
from .resource_def import Rarity, ResourceDef
from .tuning_def import (
    AnomalyTuning,
    DifficultyTuning,
    EliteModifiers,
    EncounterSize,
    EncounterTuning,
    EnemyScalingTuning,
    EngineTuning,
    JourneyTuning,
    PacingTuning,
    PenaltyTuning,
    ResourceTuning,
    RewardTuning,
    SavePointTuning,
)

__all__ = [
    "AnomalyTuning",
    "BossDef",
    "BossPhaseDef",
    "DifficultyTuning",
    "EliteModifiers",
    "EncounterSize",
    "EncounterTuning",
    "EnemyProfileDef",
    "EnemyScalingTuning",
    "EngineTuning",
    "ExperimentDef",
    "ExperimentGroup",
    "GroupAllocation",
    "JourneyTuning",
    "MILESTONE_TYPES",
    "MilestoneDef",
    "MilestoneType",
    "PacingTuning",
    "PatrollingEnemyDef",
    "PenaltyTuning",
    "Rarity",
    "ResourceDef",
    "ResourceTuning",
    "RewardTuning",
    "SavePointTuning",
]
