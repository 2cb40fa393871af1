import pytest

from depthtune.core.analytics import RecordingAnalyticsSink
from depthtune.core.rng import RNG
from depthtune.core.scheduler import ContinuationQueue
from depthtune.domain.defs import PacingTuning
from depthtune.services.encounter_service import EncounterThrottle
from depthtune.services.events import EventListeners
from depthtune.services.pacing_service import PacingController


def _build_pacing() -> tuple[PacingController, EncounterThrottle, RecordingAnalyticsSink]:
    listeners = EventListeners()
    throttle = EncounterThrottle(RNG(1), ContinuationQueue(), listeners=listeners)
    sink = RecordingAnalyticsSink()
    pacing = PacingController(throttle, analytics=sink)
    listeners.subscribe(pacing.handle_event)
    pacing.start_session(0.0, 5.0)
    return pacing, throttle, sink


def test_combat_heavy_session_reduces_encounter_rate() -> None:
    pacing, throttle, _ = _build_pacing()
    assert pacing.tick(60.0, "combat") is True
    assert throttle.encounter_rate == pytest.approx(0.95)


def test_exploration_heavy_session_increases_encounter_rate() -> None:
    pacing, throttle, _ = _build_pacing()
    pacing.tick(60.0, "exploration")
    assert throttle.encounter_rate == pytest.approx(1.05)


def test_balanced_session_leaves_rate_alone() -> None:
    pacing, throttle, _ = _build_pacing()
    pacing.tick(24.0, "combat")
    pacing.tick(30.0, "exploration")
    assert pacing.tick(6.0, "rest") is True
    assert throttle.encounter_rate == 1.0


def test_check_runs_once_per_interval() -> None:
    pacing, _, _ = _build_pacing()
    assert pacing.tick(30.0, "exploration") is False
    assert pacing.tick(30.0, "exploration") is True
    assert pacing.tick(30.0, "exploration") is False


def test_end_session_finalizes_and_logs_record() -> None:
    pacing, throttle, sink = _build_pacing()
    pacing.tick(24.0, "combat")
    pacing.tick(30.0, "exploration")
    pacing.tick(6.0, "rest")
    pacing.record_enemy_defeated()
    pacing.record_resource_collected(3)
    pacing.record_mission_completed()
    throttle.start_combat(60.0)

    record = pacing.end_session(60.0, 40.0)

    assert record is not None and record.finalized
    assert record.pace_score == pytest.approx(1.0)
    assert record.combat_count == 1
    assert record.resources_collected == 3
    fields = sink.events("session_pace")[0]
    assert fields["end_depth"] == 40.0
    assert fields["enemies_defeated"] == 1
    assert pacing.session is None
    assert pacing.end_session(70.0) is None


def test_tick_without_session_is_noop() -> None:
    pacing, _, _ = _build_pacing()
    pacing.end_session(0.0)
    assert pacing.tick(120.0, "combat") is False


def test_zero_check_interval_does_not_stall_tick() -> None:
    listeners = EventListeners()
    throttle = EncounterThrottle(RNG(1), ContinuationQueue(), listeners=listeners)
    pacing = PacingController(throttle, tuning=PacingTuning(check_interval=0.0))
    pacing.start_session(0.0)

    assert pacing.tick(5.0, "combat") is True
    assert pacing.tick(0.5, "combat") is False
    assert pacing.tick(0.5, "combat") is True
