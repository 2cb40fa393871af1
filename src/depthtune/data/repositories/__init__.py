"""Repository exports."""

from .bosses_repo import BossesRepository
from .enemies_repo import EnemiesRepository
from .experiments_repo import ExperimentsRepository
from .milestones_repo import MilestonesRepository
from .resources_repo import ResourcesRepository
from .tuning_repo import TuningRepository

__all__ = [
    "BossesRepository",
    "EnemiesRepository",
    "ExperimentsRepository",
    "MilestonesRepository",
    "ResourcesRepository",
    "TuningRepository",
]
