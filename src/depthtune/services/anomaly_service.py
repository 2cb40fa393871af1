"""Frustration pattern detection and the mitigations it triggers."""
from __future__ import annotations

import logging
from collections import Counter, deque
from dataclasses import dataclass
from typing import Deque, Dict, List

from depthtune.core.types import ProgressKind
from depthtune.domain.defs import AnomalyTuning
from depthtune.domain.depth import sanitize_depth
from depthtune.domain.pain_points import PainPoint, PainPointSeverity, PainPointType
from depthtune.services.collaborators import Collaborators, call_safely
from depthtune.services.difficulty_service import DifficultyController
from depthtune.services.events import EventListeners, PainPointDetectedEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class _DeathRecord:
    time: float
    depth: float
    cause: str
    mission_id: str | None


class AnomalyDetector:
    """Watches deaths and progress for frequent-death, mission-stuck and no-progress patterns.

    Each detected pain point is reported to listeners and analytics, then
    mitigated. A pattern that persists is reported at most once per
    `report_cooldown` seconds.
    """

    def __init__(
        self,
        difficulty: DifficultyController,
        *,
        tuning: AnomalyTuning | None = None,
        collaborators: Collaborators | None = None,
        listeners: EventListeners | None = None,
    ) -> None:
        self._difficulty = difficulty
        self._tuning = tuning or AnomalyTuning()
        self._collaborators = collaborators or Collaborators()
        self._listeners = listeners or EventListeners()
        self._recent_deaths: Deque[_DeathRecord] = deque()
        self._current_mission: str | None = None
        self._mission_attempts = 0
        self._last_progress_time: float | None = None
        self._last_check: float | None = None
        self._last_reported: Dict[PainPointType, float] = {}
        self._history: List[PainPoint] = []

    @property
    def history(self) -> List[PainPoint]:
        return list(self._history)

    @property
    def current_mission(self) -> str | None:
        return self._current_mission

    @property
    def mission_attempts(self) -> int:
        return self._mission_attempts

    def recent_death_count(self, now: float) -> int:
        self._prune(now)
        return len(self._recent_deaths)

    def start(self, now: float) -> None:
        """Begin a session: the progress clock starts now."""
        self._last_progress_time = now
        self._last_check = now

    def record_death(self, now: float, depth: object, cause: str = "unknown", mission_id: str | None = None) -> List[PainPoint]:
        self._recent_deaths.append(_DeathRecord(now, sanitize_depth(depth), cause, mission_id))
        self._prune(now)
        detected: List[PainPoint] = []
        if len(self._recent_deaths) >= self._tuning.frequent_death_count:
            detected.extend(self._report(self._frequent_death(now), now))
        if mission_id and mission_id == self._current_mission:
            self._mission_attempts += 1
            if self._mission_attempts >= self._tuning.mission_stuck_attempts:
                detected.extend(self._report(self._mission_stuck(mission_id, now), now))
        return detected

    def record_progress(self, now: float, kind: ProgressKind, details: str = "") -> None:
        self._last_progress_time = now
        if kind == "mission_started":
            self._current_mission = details or None
            self._mission_attempts = 0
        elif kind == "mission_completed" and details == self._current_mission:
            self._current_mission = None
            self._mission_attempts = 0

    def tick(self, now: float) -> List[PainPoint]:
        if self._last_check is None:
            self.start(now)
            return []
        if now - self._last_check < self._tuning.check_interval:
            return []
        self._last_check = now
        assert self._last_progress_time is not None
        idle = now - self._last_progress_time
        if idle <= self._tuning.no_progress_threshold:
            return []
        pain_point = PainPoint(
            type=PainPointType.NO_PROGRESS,
            severity=PainPointSeverity.MEDIUM,
            description=f"No progress for {idle / 60.0:.0f} minutes",
            detected_at=now,
            details={"time_since_progress": idle, "current_mission": self._current_mission},
        )
        return self._report(pain_point, now)

    def _frequent_death(self, now: float) -> PainPoint:
        causes = Counter(record.cause for record in self._recent_deaths)
        depths = [record.depth for record in self._recent_deaths]
        return PainPoint(
            type=PainPointType.FREQUENT_DEATH,
            severity=PainPointSeverity.HIGH,
            description=f"{len(self._recent_deaths)} deaths within {self._tuning.frequent_death_window:.0f}s",
            detected_at=now,
            details={
                "average_depth": sum(depths) / len(depths),
                "death_causes": dict(causes),
                "mission_attempts": self._mission_attempts,
            },
        )

    def _mission_stuck(self, mission_id: str, now: float) -> PainPoint:
        deaths_in_mission = sum(1 for record in self._recent_deaths if record.mission_id == mission_id)
        return PainPoint(
            type=PainPointType.MISSION_STUCK,
            severity=PainPointSeverity.MEDIUM,
            description=f"Mission {mission_id} failed {self._mission_attempts} times",
            detected_at=now,
            details={
                "mission_id": mission_id,
                "attempts": self._mission_attempts,
                "recent_deaths": deaths_in_mission,
            },
        )

    def _report(self, pain_point: PainPoint, now: float) -> List[PainPoint]:
        last = self._last_reported.get(pain_point.type)
        if last is not None and now - last < self._tuning.report_cooldown:
            logger.debug("Pain point %s suppressed by cooldown.", pain_point.type.value)
            return []
        self._last_reported[pain_point.type] = now
        self._history.append(pain_point)
        logger.info("Pain point detected: %s (%s)", pain_point.type.value, pain_point.description)
        call_safely("Analytics log", self._collaborators.analytics.log, "pain_point", pain_point.to_fields())
        self._listeners.emit(PainPointDetectedEvent(pain_point=pain_point))
        self._mitigate(pain_point)
        return [pain_point]

    def _mitigate(self, pain_point: PainPoint) -> None:
        notifications = self._collaborators.notifications
        if pain_point.type is PainPointType.FREQUENT_DEATH:
            self._difficulty.decrease_difficulty(self._tuning.difficulty_relief_step)
            call_safely(
                "Difficulty hint",
                notifications.show_hint,
                "Looks like a rough patch. The depths have eased off a little.",
            )
        elif pain_point.type is PainPointType.MISSION_STUCK:
            call_safely(
                "Mission hint",
                notifications.show_hint,
                f"Stuck on {pain_point.details.get('mission_id')}? Check the mission briefing for a route.",
            )
        elif pain_point.type is PainPointType.NO_PROGRESS:
            call_safely(
                "Activity recommendation",
                notifications.show_hint,
                "Try a new mission or head for unexplored depths.",
            )

    def _prune(self, now: float) -> None:
        window = self._tuning.frequent_death_window
        while self._recent_deaths and now - self._recent_deaths[0].time > window:
            self._recent_deaths.popleft()
