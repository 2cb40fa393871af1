"""Session pacing: time allocation across combat, exploration and rest."""
from __future__ import annotations

import logging
import math

from depthtune.core.types import Activity
from depthtune.domain.defs import PacingTuning
from depthtune.domain.depth import sanitize_depth
from depthtune.domain.pacing import PaceTargets, SessionPaceRecord
from depthtune.services.collaborators import AnalyticsSink, call_safely
from depthtune.services.encounter_service import EncounterThrottle
from depthtune.services.events import CombatStartedEvent, EngineEvent

logger = logging.getLogger(__name__)

# Floor for check_interval when a tuning object bypasses the loader checks.
_MIN_CHECK_INTERVAL = 1.0


class PacingController:
    """Accumulates session time per activity and steers the encounter rate.

    Every `check_interval` seconds of accumulated time the actual ratios are
    compared with the targets; a ratio past its target by more than the
    threshold nudges the throttle one step.
    """

    def __init__(
        self,
        throttle: EncounterThrottle,
        *,
        tuning: PacingTuning | None = None,
        analytics: AnalyticsSink | None = None,
    ) -> None:
        self._throttle = throttle
        self._tuning = tuning or PacingTuning()
        self._analytics = analytics
        self._targets = PaceTargets(
            combat=self._tuning.target_combat_ratio,
            exploration=self._tuning.target_exploration_ratio,
            rest=self._tuning.target_rest_ratio,
        )
        self._session: SessionPaceRecord | None = None
        self._next_check_at = max(self._tuning.check_interval, _MIN_CHECK_INTERVAL)

    @property
    def session(self) -> SessionPaceRecord | None:
        return self._session

    def start_session(self, now: float, depth: object = 0.0) -> SessionPaceRecord:
        if self._session is not None:
            logger.warning("Session already running; finalizing it before starting a new one.")
            self.end_session(now, depth)
        self._session = SessionPaceRecord(start_time=now, start_depth=sanitize_depth(depth))
        self._next_check_at = max(self._tuning.check_interval, _MIN_CHECK_INTERVAL)
        self._throttle.reset(now)
        logger.info("Pacing session started at %.1f", now)
        return self._session

    def end_session(self, now: float, depth: object = 0.0) -> SessionPaceRecord | None:
        record = self._session
        if record is None:
            return None
        record.finalize(now, sanitize_depth(depth), self._targets)
        self._session = None
        logger.info("Pacing session ended: pace score %.2f", record.pace_score)
        if self._analytics is not None:
            call_safely("Analytics log", self._analytics.log, "session_pace", record.to_fields())
        return record

    def tick(self, dt: float, activity: Activity) -> bool:
        """Accumulate `dt`; returns True when a pacing check ran."""
        record = self._session
        if record is None:
            return False
        record.accumulate(activity, dt)
        if record.total_time < self._next_check_at:
            return False
        interval = max(self._tuning.check_interval, _MIN_CHECK_INTERVAL)
        missed = math.floor((record.total_time - self._next_check_at) / interval) + 1
        self._next_check_at += missed * interval
        self._check_ratios(record)
        return True

    def _check_ratios(self, record: SessionPaceRecord) -> None:
        combat_ratio, exploration_ratio, _ = record.ratios()
        tuning = self._tuning
        if combat_ratio > self._targets.combat + tuning.deviation_threshold:
            self._throttle.reduce_encounter_rate(tuning.adjustment_step, reason="combat_heavy")
        elif exploration_ratio > self._targets.exploration + tuning.deviation_threshold:
            self._throttle.increase_encounter_rate(tuning.adjustment_step, reason="exploration_heavy")

    def handle_event(self, event: EngineEvent) -> None:
        if isinstance(event, CombatStartedEvent):
            self.record_combat_start()

    def record_combat_start(self) -> None:
        if self._session is not None:
            self._session.combat_count += 1

    def record_enemy_defeated(self) -> None:
        if self._session is not None:
            self._session.enemies_defeated += 1

    def record_resource_collected(self, amount: int = 1) -> None:
        if self._session is not None:
            self._session.resources_collected += max(0, amount)

    def record_mission_completed(self) -> None:
        if self._session is not None:
            self._session.missions_completed += 1
