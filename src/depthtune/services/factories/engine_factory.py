"""Factory that loads definitions and wires a complete engine."""
from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List

from depthtune.core.rng import RNG
from depthtune.core.scheduler import ContinuationQueue
from depthtune.data.errors import DataError
from depthtune.data.repositories import (
    BossesRepository,
    EnemiesRepository,
    ExperimentsRepository,
    MilestonesRepository,
    ResourcesRepository,
    TuningRepository,
)
from depthtune.domain.defs import EngineTuning
from depthtune.services.anomaly_service import AnomalyDetector
from depthtune.services.collaborators import Collaborators
from depthtune.services.controllers.engine_controller import EngineComponents, ExperienceEngine
from depthtune.services.difficulty_service import DifficultyController
from depthtune.services.encounter_service import EncounterThrottle
from depthtune.services.enemy_scaling_service import EnemyScaler
from depthtune.services.errors import FactoryError
from depthtune.services.events import EventListeners
from depthtune.services.experiment_service import ExperimentAssigner
from depthtune.services.journey_service import JourneyTracker
from depthtune.services.pacing_service import PacingController
from depthtune.services.penalty_service import PenaltyCalculator
from depthtune.services.resource_valuation_service import ResourceValuator
from depthtune.services.reward_service import RewardTimer
from depthtune.services.save_point_service import SavePointScheduler
from depthtune.services.save_service import ProfileSaveService

logger = logging.getLogger(__name__)


def create_engine(
    player_id: str,
    *,
    base_path: Path | str | None = None,
    seed: int = 0,
    collaborators: Collaborators | None = None,
    tuning: EngineTuning | None = None,
    started_at: float = 0.0,
) -> ExperienceEngine:
    """Load every definition file and return a ready-to-tick engine.

    Raises FactoryError when the definitions cannot be loaded or validated.
    An explicit ``tuning`` replaces tuning.json entirely.
    """
    if not isinstance(player_id, str) or not player_id:
        raise FactoryError("player_id must be a non-empty string.")
    collaborators = collaborators or Collaborators()
    try:
        enemies_repo = EnemiesRepository(base_path)
        bosses_repo = BossesRepository(base_path, enemies_repo=enemies_repo)
        resources_repo = ResourcesRepository(base_path)
        milestones_repo = MilestonesRepository(base_path)
        experiments_repo = ExperimentsRepository(base_path)
        if tuning is None:
            tuning = TuningRepository(base_path).get_tuning()
        for repo in (enemies_repo, bosses_repo, resources_repo, milestones_repo, experiments_repo):
            repo.all()
    except DataError as exc:
        raise FactoryError(f"Unable to load engine definitions: {exc}") from exc

    rng = RNG(seed)
    queue = ContinuationQueue()
    listeners = EventListeners()
    engine_ref: List[ExperienceEngine] = []

    def snapshot() -> Dict[str, Any]:
        if not engine_ref:
            return {}
        return ProfileSaveService().serialize(engine_ref[0].export_profile())

    difficulty = DifficultyController(tuning.difficulty)
    scaler = EnemyScaler(
        difficulty,
        tuning=tuning.enemy_scaling,
        enemies_repo=enemies_repo,
        bosses_repo=bosses_repo,
    )
    throttle = EncounterThrottle(
        rng,
        queue,
        tuning=tuning.encounters,
        scaler=scaler,
        spawner=collaborators.spawner,
        listeners=listeners,
    )
    pacing = PacingController(throttle, tuning=tuning.pacing, analytics=collaborators.analytics)
    listeners.subscribe(pacing.handle_event)
    components = EngineComponents(
        tuning=tuning,
        rng=rng,
        queue=queue,
        listeners=listeners,
        collaborators=collaborators,
        difficulty=difficulty,
        scaler=scaler,
        valuator=ResourceValuator(rng, tuning=tuning.resources, death_rates=collaborators.death_rates),
        penalty=PenaltyCalculator(tuning.penalty),
        throttle=throttle,
        pacing=pacing,
        rewards=RewardTimer(
            queue,
            milestones=milestones_repo.all(),
            tuning=tuning.rewards,
            collaborators=collaborators,
            listeners=listeners,
        ),
        experiments=ExperimentAssigner(experiments_repo.all(), collaborators=collaborators),
        anomalies=AnomalyDetector(
            difficulty,
            tuning=tuning.anomalies,
            collaborators=collaborators,
            listeners=listeners,
        ),
        journey=JourneyTracker(
            player_id,
            tuning=tuning.journey,
            analytics=collaborators.analytics,
            listeners=listeners,
            started_at=started_at,
        ),
        save_points=SavePointScheduler(
            tuning=tuning.save_points,
            collaborators=collaborators,
            listeners=listeners,
            snapshot=snapshot,
        ),
        enemies_repo=enemies_repo,
        resources_repo=resources_repo,
    )
    engine = ExperienceEngine(player_id, components)
    engine_ref.append(engine)
    logger.info("Engine created for player '%s' (seed=%d).", player_id, seed)
    return engine


def with_overrides(tuning: EngineTuning, **sections: Any) -> EngineTuning:
    """Return a copy of ``tuning`` with whole sections replaced."""
    unknown = set(sections) - set(EngineTuning.__dataclass_fields__)
    if unknown:
        raise FactoryError(f"Unknown tuning sections: {', '.join(sorted(unknown))}")
    return replace(tuning, **sections)
