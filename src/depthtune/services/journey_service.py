"""Monotonic player journey stage tracking."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping

from depthtune.domain.defs import JourneyTuning
from depthtune.domain.depth import sanitize_depth
from depthtune.domain.journey import (
    STAGE_PROGRESS,
    STAGE_RECOMMENDATIONS,
    JourneyCheckpoint,
    JourneyEvent,
    JourneyEventType,
    JourneyReport,
    JourneyStage,
    next_stage,
)
from depthtune.domain.pain_points import PainPoint, PainPointSeverity, PainPointType
from depthtune.services.collaborators import AnalyticsSink, call_safely
from depthtune.services.events import EventListeners, StageChangedEvent

logger = logging.getLogger(__name__)


class JourneyTracker:
    """Advances the journey stage on trigger events; stages never regress."""

    def __init__(
        self,
        player_id: str,
        *,
        tuning: JourneyTuning | None = None,
        analytics: AnalyticsSink | None = None,
        listeners: EventListeners | None = None,
        started_at: float = 0.0,
    ) -> None:
        self._player_id = player_id
        self._tuning = tuning or JourneyTuning()
        self._analytics = analytics
        self._listeners = listeners or EventListeners()
        self._stage = JourneyStage.DISCOVERY
        self._stage_entry_times: Dict[JourneyStage, float] = {JourneyStage.DISCOVERY: started_at}
        self._events: List[JourneyEvent] = []
        self._checkpoints: List[JourneyCheckpoint] = []
        self._session_start: float | None = None
        self._last_checkpoint: float | None = None
        self._total_play_time = 0.0
        self._missions_completed = 0
        self._resources_collected = 0
        self._enemies_defeated = 0
        self._deepest_depth = 0.0
        self._death_count = 0
        self._current_depth = 0.0

    @property
    def stage(self) -> JourneyStage:
        return self._stage

    @property
    def stage_entry_times(self) -> Dict[JourneyStage, float]:
        return dict(self._stage_entry_times)

    @property
    def events(self) -> List[JourneyEvent]:
        return list(self._events)

    @property
    def checkpoints(self) -> List[JourneyCheckpoint]:
        return list(self._checkpoints)

    @property
    def missions_completed(self) -> int:
        return self._missions_completed

    @property
    def deepest_depth(self) -> float:
        return self._deepest_depth

    def start_session(self, now: float) -> None:
        self._session_start = now
        self._last_checkpoint = now

    def end_session(self, now: float) -> None:
        if self._session_start is not None:
            self._total_play_time += max(0.0, now - self._session_start)
        self._session_start = None
        self._last_checkpoint = None

    def record_event(
        self,
        event_type: JourneyEventType,
        description: str = "",
        params: Mapping[str, Any] | None = None,
        now: float = 0.0,
    ) -> JourneyStage:
        event = JourneyEvent(
            event_type=event_type,
            description=description or event_type.value,
            timestamp=now,
            stage=self._stage,
            params=dict(params or {}),
        )
        self._events.append(event)
        if self._analytics is not None:
            call_safely(
                "Analytics log",
                self._analytics.log,
                "journey_event",
                {"event": event_type.value, "stage": self._stage.label, "description": event.description, **event.params},
            )
        self._advance(event_type, now)
        return self._stage

    def record_mission_complete(self, mission_id: str, completion_time: float, retry_count: int, now: float) -> None:
        self._missions_completed += 1
        self.record_event(
            JourneyEventType.MISSION_COMPLETE,
            f"Mission complete: {mission_id}",
            {"mission_id": mission_id, "completion_time": completion_time, "retry_count": retry_count},
            now,
        )
        if self._missions_completed == 1:
            self.record_event(JourneyEventType.FIRST_MISSION_COMPLETE, "First mission complete", now=now)
        elif self._missions_completed == self._tuning.proficiency_mission_count:
            self.record_event(
                JourneyEventType.FIFTH_MISSION_COMPLETE,
                f"{self._missions_completed} missions complete",
                now=now,
            )

    def record_depth_reached(self, depth: object, now: float) -> bool:
        current = sanitize_depth(depth)
        self._current_depth = current
        if current <= self._deepest_depth:
            return False
        self._deepest_depth = current
        self.record_event(JourneyEventType.NEW_DEPTH_RECORD, f"New depth record: {current:.0f} m", {"depth": current}, now)
        return True

    def record_death(self, depth: object, cause: str, session_duration: float, now: float) -> None:
        self._death_count += 1
        self.record_event(
            JourneyEventType.PLAYER_DEATH,
            f"Death: {cause}",
            {"depth": sanitize_depth(depth), "cause": cause, "session_duration": session_duration},
            now,
        )

    def record_success(self, duration: float, depth: object, now: float) -> None:
        self.record_event(
            JourneyEventType.ACTIVITY_SUCCESS,
            "Activity completed",
            {"duration": duration, "depth": sanitize_depth(depth)},
            now,
        )

    def record_resource_collected(self, amount: int = 1) -> None:
        self._resources_collected += max(0, amount)

    def record_enemy_defeated(self) -> None:
        self._enemies_defeated += 1

    def tick(self, now: float) -> bool:
        """Record a checkpoint every `checkpoint_interval` seconds of session time."""
        if self._session_start is None or self._last_checkpoint is None:
            return False
        if now - self._last_checkpoint < self._tuning.checkpoint_interval:
            return False
        self._last_checkpoint = now
        self._checkpoints.append(
            JourneyCheckpoint(
                timestamp=now,
                session_time=now - self._session_start,
                depth=self._current_depth,
                missions_completed=self._missions_completed,
                resources_collected=self._resources_collected,
                enemies_defeated=self._enemies_defeated,
                deepest_depth=self._deepest_depth,
            )
        )
        return True

    def generate_report(self, now: float) -> JourneyReport:
        play_time = self._total_play_time
        if self._session_start is not None:
            play_time += max(0.0, now - self._session_start)
        return JourneyReport(
            player_id=self._player_id,
            current_stage=self._stage,
            total_play_time=play_time,
            total_checkpoints=len(self._checkpoints),
            missions_completed=self._missions_completed,
            deepest_depth=self._deepest_depth,
            death_count=self._death_count,
            stage_progress=STAGE_PROGRESS[self._stage],
            recommendations=list(STAGE_RECOMMENDATIONS[self._stage]),
            pain_points=self._journey_pain_points(now),
        )

    def restore(
        self,
        stage: JourneyStage,
        entry_times: Mapping[JourneyStage, float],
        *,
        deepest_depth: float = 0.0,
        missions_completed: int = 0,
    ) -> None:
        self._stage = stage
        self._stage_entry_times = dict(entry_times)
        self._deepest_depth = sanitize_depth(deepest_depth)
        self._missions_completed = max(0, missions_completed)

    def _advance(self, event_type: JourneyEventType, now: float) -> None:
        previous = self._stage
        current = next_stage(previous, event_type)
        if current <= previous:
            return
        self._stage = current
        self._stage_entry_times.setdefault(current, now)
        logger.info("Journey stage %s -> %s", previous.label, current.label)
        self.record_event(
            JourneyEventType.STAGE_TRANSITION,
            f"Entered stage: {current.label}",
            {"previous_stage": previous.label, "new_stage": current.label},
            now,
        )
        self._listeners.emit(StageChangedEvent(previous=previous, current=current, time=now))

    def _journey_pain_points(self, now: float) -> List[PainPoint]:
        pain_points: List[PainPoint] = []
        if self._death_count > self._missions_completed * 0.5:
            pain_points.append(
                PainPoint(
                    type=PainPointType.FREQUENT_DEATH,
                    severity=PainPointSeverity.HIGH,
                    description="Death count is high relative to completed missions",
                    detected_at=now,
                    details={"deaths": self._death_count, "missions_completed": self._missions_completed},
                )
            )
        return pain_points
