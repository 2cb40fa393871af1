"""UI-agnostic engine façade that owns the tick loop."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Sequence

from depthtune.core.rng import RNG
from depthtune.core.scheduler import ContinuationQueue, Generation
from depthtune.core.types import Activity
from depthtune.data.repositories import EnemiesRepository, ResourcesRepository
from depthtune.domain.defs import BossPhaseDef, EngineTuning, EnemyProfileDef, ExperimentGroup, ResourceDef
from depthtune.domain.depth import sanitize_depth
from depthtune.domain.enemy_scaling import ScaledEnemyStats
from depthtune.domain.insurance import InsuranceTier
from depthtune.domain.journey import JourneyEventType, JourneyReport, JourneyStage
from depthtune.domain.pacing import SessionPaceRecord
from depthtune.domain.pain_points import PainPoint
from depthtune.domain.penalty import DeathContext, DeathReport
from depthtune.domain.rewards import ComboResult, LootItem, MissionReward
from depthtune.domain.state import ProfileState
from depthtune.services.anomaly_service import AnomalyDetector
from depthtune.services.collaborators import Collaborators, call_safely
from depthtune.services.difficulty_service import DifficultyController
from depthtune.services.encounter_service import EncounterThrottle
from depthtune.services.enemy_scaling_service import EnemyScaler
from depthtune.services.events import EngineEvent, EventListeners, SavePointRequest
from depthtune.services.experiment_service import ExperimentAssigner
from depthtune.services.journey_service import JourneyTracker
from depthtune.services.pacing_service import PacingController
from depthtune.services.penalty_service import PenaltyCalculator
from depthtune.services.resource_valuation_service import ResourceValuator
from depthtune.services.reward_service import RewardTimer
from depthtune.services.save_point_service import SavePointScheduler

logger = logging.getLogger(__name__)

PENALTY_FAILED_MESSAGE = "penalty could not be applied"


@dataclass(slots=True)
class EngineComponents:
    """Every controller the engine drives, already wired together."""

    tuning: EngineTuning
    rng: RNG
    queue: ContinuationQueue
    listeners: EventListeners
    collaborators: Collaborators
    difficulty: DifficultyController
    scaler: EnemyScaler
    valuator: ResourceValuator
    penalty: PenaltyCalculator
    throttle: EncounterThrottle
    pacing: PacingController
    rewards: RewardTimer
    experiments: ExperimentAssigner
    anomalies: AnomalyDetector
    journey: JourneyTracker
    save_points: SavePointScheduler
    enemies_repo: EnemiesRepository | None = None
    resources_repo: ResourcesRepository | None = None


@dataclass(slots=True)
class TickReport:
    """What happened during one tick."""

    now: float
    continuations_run: int = 0
    difficulty_evaluated: bool = False
    market_updated: bool = False
    pacing_checked: bool = False
    encounter_started: bool = False
    pain_points: List[PainPoint] = field(default_factory=list)
    save_request: SavePointRequest | None = None


class ExperienceEngine:
    """
    Explicit context object for one player's session.

    All controllers are constructed once (see services.factories.create_engine)
    and injected here; nothing is reached through globals. Gameplay code calls
    the inbound methods; the host calls tick() once per frame.
    """

    def __init__(self, player_id: str, components: EngineComponents) -> None:
        self._player_id = player_id
        self._c = components
        self._now = 0.0
        self._session_active = False
        self._session_started_at = 0.0
        self._dive_active = False
        self._depth = 0.0
        self._first_seen_at = 0.0
        self._dives_started = 0
        self._session_generation = Generation()

    @property
    def player_id(self) -> str:
        return self._player_id

    @property
    def now(self) -> float:
        return self._now

    @property
    def components(self) -> EngineComponents:
        return self._c

    @property
    def difficulty(self) -> DifficultyController:
        return self._c.difficulty

    @property
    def journey_stage(self) -> JourneyStage:
        return self._c.journey.stage

    def subscribe(self, listener: Callable[[EngineEvent], None]) -> None:
        self._c.listeners.subscribe(listener)

    # -- tick loop -----------------------------------------------------------------

    def tick(self, now: float, dt: float, activity: Activity = "exploration", depth: object = None) -> TickReport:
        """Run due continuations, then every periodic controller. Never raises."""
        self._now = now
        if depth is not None:
            self._depth = sanitize_depth(depth)
        report = TickReport(now=now)
        c = self._c
        report.continuations_run = c.queue.run_due(now)
        report.difficulty_evaluated = bool(self._guarded("difficulty", lambda: c.difficulty.tick(now)))
        report.market_updated = bool(self._guarded("market", lambda: c.valuator.tick(now)))
        if not self._session_active:
            return report
        self._guarded("depth tracking", lambda: self._track_depth(now))
        report.pacing_checked = bool(self._guarded("pacing", lambda: c.pacing.tick(dt, activity)))
        report.encounter_started = bool(self._guarded("encounters", lambda: c.throttle.tick(now, dt, self._depth)))
        report.pain_points = list(self._guarded("anomalies", lambda: c.anomalies.tick(now)) or [])
        self._guarded("journey", lambda: c.journey.tick(now))
        if self._dive_active:
            report.save_request = self._guarded("save points", lambda: c.save_points.tick(now, self._depth))
        return report

    def _guarded(self, label: str, func: Callable[[], Any]) -> Any:
        try:
            return func()
        except Exception:
            logger.exception("Tick step '%s' failed.", label)
            return None

    def _track_depth(self, now: float) -> None:
        if self._c.journey.record_depth_reached(self._depth, now):
            self._c.rewards.on_depth_reached(self._depth, now)
            self._c.anomalies.record_progress(now, "depth_reached", f"{self._depth:.0f}")

    # -- sessions and dives --------------------------------------------------------

    def start_session(self, now: float, depth: object = 0.0, *, is_new_player: bool = False) -> None:
        if self._session_active:
            self.end_session(now, depth)
        c = self._c
        self._now = now
        self._depth = sanitize_depth(depth)
        self._session_active = True
        self._session_started_at = now
        if is_new_player and not c.journey.events:
            self._first_seen_at = now
            c.journey.record_event(JourneyEventType.FIRST_LAUNCH, "First launch", now=now)
        c.experiments.assign_all(self._player_id, is_new_player=is_new_player)
        c.pacing.start_session(now, self._depth)
        c.anomalies.start(now)
        c.journey.start_session(now)
        call_safely(
            "Analytics log",
            c.collaborators.analytics.log,
            "session_started",
            {"player_id": self._player_id, "depth": self._depth, "new_player": is_new_player},
        )

    def end_session(self, now: float, depth: object = 0.0) -> SessionPaceRecord | None:
        if not self._session_active:
            return None
        c = self._c
        self._now = now
        if self._dive_active:
            self.end_dive(now)
        record = c.pacing.end_session(now, depth)
        c.throttle.reset(now)
        c.rewards.reset()
        c.journey.end_session(now)
        self._session_active = False
        self._session_generation.bump()
        return record

    def start_dive(self, now: float, depth: object = 0.0) -> None:
        self._now = now
        self._depth = sanitize_depth(depth)
        self._dive_active = True
        c = self._c
        if self._dives_started == 0:
            c.journey.record_event(JourneyEventType.FIRST_DIVE, "First dive", now=now)
        self._dives_started += 1
        c.rewards.on_dive_started(now)
        c.save_points.start(now, self._depth)

    def end_dive(self, now: float) -> None:
        """Dive boundary: insurance is cleared here and nowhere else."""
        if not self._dive_active:
            return
        self._dive_active = False
        self._c.penalty.clear_insurance()
        if self._c.throttle.in_combat:
            self._c.throttle.end_combat(now)

    # -- inbound gameplay events ---------------------------------------------------

    def record_death(
        self,
        depth: object,
        cause: str = "unknown",
        *,
        mission_id: str | None = None,
        now: float | None = None,
    ) -> List[PainPoint]:
        at = self._at(now)
        c = self._c
        c.difficulty.record_death(depth, cause)
        c.journey.record_death(depth, cause, at - self._session_started_at, at)
        return c.anomalies.record_death(at, depth, cause, mission_id)

    def record_success(self, duration: float, depth: object = 0.0, *, now: float | None = None) -> None:
        at = self._at(now)
        c = self._c
        c.difficulty.record_success(duration, depth)
        c.anomalies.record_progress(at, "activity_success")
        c.journey.record_success(duration, depth, at)

    def on_resource_collected(
        self, resource_id: str, amount: int = 1, value: int | None = None, *, now: float | None = None
    ) -> ComboResult:
        at = self._at(now)
        c = self._c
        if value is None:
            resource = self._find_resource(resource_id)
            value = c.valuator.value(resource, self._depth) * max(0, amount) if resource is not None else 0
        c.pacing.record_resource_collected(amount)
        c.journey.record_resource_collected(amount)
        c.anomalies.record_progress(at, "resource_collected", resource_id)
        return c.rewards.on_resource_collected(resource_id, amount, value, at)

    def on_enemy_defeated(
        self,
        enemy_id: str,
        xp: int,
        credits: int,
        loot: Sequence[LootItem] = (),
        *,
        now: float | None = None,
    ) -> ComboResult:
        at = self._at(now)
        c = self._c
        c.pacing.record_enemy_defeated()
        c.journey.record_enemy_defeated()
        c.anomalies.record_progress(at, "enemy_defeated", enemy_id)
        return c.rewards.on_enemy_defeated(enemy_id, xp, credits, loot, at)

    def on_mission_started(self, mission_id: str, *, now: float | None = None) -> None:
        self._c.anomalies.record_progress(self._at(now), "mission_started", mission_id)

    def on_mission_completed(
        self,
        reward: MissionReward,
        *,
        completion_time: float = 0.0,
        retry_count: int = 0,
        now: float | None = None,
    ) -> None:
        at = self._at(now)
        c = self._c
        c.pacing.record_mission_completed()
        c.anomalies.record_progress(at, "mission_completed", reward.mission_id)
        c.journey.record_mission_complete(reward.mission_id, completion_time, retry_count, at)
        c.rewards.on_mission_completed(reward, at)

    def record_journey_event(
        self, event_type: JourneyEventType, description: str = "", params: Mapping[str, Any] | None = None
    ) -> JourneyStage:
        return self._c.journey.record_event(event_type, description, params, self._now)

    def on_milestone_reached(self, milestone_id: str) -> bool:
        return self._c.rewards.on_milestone_reached(milestone_id, self._now)

    # -- death penalty -------------------------------------------------------------

    def apply_death_penalty(self, context: DeathContext) -> DeathReport:
        """Compute the report now; hand it to the inventory on a later tick."""
        c = self._c
        report = c.penalty.apply_death_penalty(context)
        call_safely("Analytics log", c.collaborators.analytics.log, "death_penalty", report.to_fields())
        if report.no_penalty:
            return report
        if not c.collaborators.has("inventory"):
            logger.info("No inventory collaborator; death penalty not applied.")
            return report
        c.queue.schedule(
            self._now + c.tuning.penalty.penalty_apply_delay,
            lambda: self._apply_penalty(report),
            label="death-penalty",
            guard=self._session_generation.guard(),
        )
        return report

    def _apply_penalty(self, report: DeathReport) -> None:
        collaborators = self._c.collaborators
        if not call_safely("Death penalty application", collaborators.inventory.apply_death_penalty, report):
            call_safely(
                "Penalty failure notice",
                collaborators.notifications.notify,
                PENALTY_FAILED_MESSAGE,
                kind="error",
            )

    def purchase_insurance(self, tier: InsuranceTier, expected_reward: float) -> int:
        return self._c.penalty.purchase_insurance(tier, expected_reward)

    # -- combat --------------------------------------------------------------------

    def start_combat(self, now: float | None = None) -> None:
        self._c.throttle.start_combat(self._at(now))

    def end_combat(self, now: float | None = None) -> None:
        self._c.throttle.end_combat(self._at(now))

    def force_encounter(self, size: str) -> int:
        return self._c.throttle.force_encounter(size, self._now, self._depth)

    # -- save points ---------------------------------------------------------------

    def enter_safe_zone(self) -> SavePointRequest | None:
        return self._c.save_points.enter_safe_zone(self._now, self._depth)

    def exit_safe_zone(self) -> None:
        self._c.save_points.exit_safe_zone()

    def manual_save(self) -> SavePointRequest | None:
        return self._c.save_points.manual_save(self._now, self._depth)

    def checkpoint(self, label: str = "") -> SavePointRequest:
        return self._c.save_points.checkpoint(self._now, self._depth, label)

    # -- queries -------------------------------------------------------------------

    def get_difficulty_at_depth(self, depth: object) -> float:
        return self._c.difficulty.get_difficulty_at_depth(depth)

    def scale_stats(self, profile: EnemyProfileDef | str, depth: object) -> ScaledEnemyStats:
        if isinstance(profile, str):
            if self._c.enemies_repo is None:
                raise KeyError(profile)
            profile = self._c.enemies_repo.get(profile)
        return self._c.scaler.scale_stats(profile, depth)

    def get_current_boss_phase(self, boss_id: str, health_fraction: float) -> BossPhaseDef:
        return self._c.scaler.get_current_boss_phase(boss_id, health_fraction)

    def value(self, resource: ResourceDef | str, depth: object) -> int:
        if isinstance(resource, str):
            found = self._find_resource(resource)
            if found is None:
                raise KeyError(resource)
            resource = found
        return self._c.valuator.value(resource, depth)

    def assign_group(self, test_id: str) -> ExperimentGroup:
        return self._c.experiments.assign_group(self._player_id, test_id)

    def get_config(self, test_id: str) -> Mapping[str, Any]:
        return self._c.experiments.get_config(test_id)

    def journey_report(self) -> JourneyReport:
        return self._c.journey.generate_report(self._now)

    def reset_difficulty(self) -> None:
        self._c.difficulty.reset()

    # -- persistence ---------------------------------------------------------------

    def export_profile(self) -> ProfileState:
        c = self._c
        difficulty = c.difficulty.export_state()
        market = c.valuator.export_state()
        return ProfileState(
            player_id=self._player_id,
            skill_factor=difficulty["skill_factor"],
            dynamic_adjustment=difficulty["dynamic_adjustment"],
            achieved_milestones=set(c.rewards.achieved_milestones),
            experiment_assignments=c.experiments.assignments_for(self._player_id),
            journey_stage=c.journey.stage,
            stage_entry_times=c.journey.stage_entry_times,
            market_factors=market["market_factors"],
            economy_epoch=market["economy_epoch"],
            deepest_depth=c.journey.deepest_depth,
            missions_completed=c.journey.missions_completed,
            first_seen_at=self._first_seen_at,
            dives_started=self._dives_started,
        )

    def restore_profile(self, state: ProfileState) -> None:
        if state.player_id != self._player_id:
            raise ValueError(f"Profile belongs to '{state.player_id}', not '{self._player_id}'.")
        c = self._c
        c.difficulty.restore_state(
            {"skill_factor": state.skill_factor, "dynamic_adjustment": state.dynamic_adjustment}
        )
        c.valuator.restore_state({"market_factors": state.market_factors, "economy_epoch": state.economy_epoch})
        c.rewards.restore_achieved(state.achieved_milestones)
        c.rewards.restore_deepest_depth(state.deepest_depth)
        c.experiments.restore_assignments(self._player_id, state.experiment_assignments)
        c.journey.restore(
            state.journey_stage,
            state.stage_entry_times,
            deepest_depth=state.deepest_depth,
            missions_completed=state.missions_completed,
        )
        self._first_seen_at = state.first_seen_at
        self._dives_started = state.dives_started

    def _at(self, now: float | None) -> float:
        if now is not None:
            self._now = now
        return self._now

    def _find_resource(self, resource_id: str) -> ResourceDef | None:
        if self._c.resources_repo is None:
            return None
        return self._c.resources_repo.find(resource_id)
