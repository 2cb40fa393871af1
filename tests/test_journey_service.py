from typing import List

import pytest

from depthtune.core.analytics import RecordingAnalyticsSink
from depthtune.core.rng import RNG
from depthtune.domain.journey import JourneyEventType, JourneyStage, next_stage
from depthtune.domain.pain_points import PainPointType
from depthtune.services.events import EngineEvent, EventListeners, StageChangedEvent
from depthtune.services.journey_service import JourneyTracker


def _build_tracker() -> tuple[JourneyTracker, List[EngineEvent], RecordingAnalyticsSink]:
    events: List[EngineEvent] = []
    listeners = EventListeners()
    listeners.subscribe(events.append)
    sink = RecordingAnalyticsSink()
    tracker = JourneyTracker("diver-1", analytics=sink, listeners=listeners)
    tracker.start_session(0.0)
    return tracker, events, sink


def test_stage_advances_through_trigger_events() -> None:
    tracker, events, _ = _build_tracker()
    assert tracker.stage is JourneyStage.DISCOVERY

    tracker.record_event(JourneyEventType.TUTORIAL_COMPLETE, now=10.0)
    assert tracker.stage is JourneyStage.ONBOARDING

    tracker.record_mission_complete("m1", 300.0, 0, 20.0)
    assert tracker.stage is JourneyStage.ENGAGEMENT

    for index in range(2, 6):
        tracker.record_mission_complete(f"m{index}", 300.0, 1, 20.0 + index)
    assert tracker.stage is JourneyStage.PROFICIENCY
    assert tracker.missions_completed == 5

    changes = [event for event in events if isinstance(event, StageChangedEvent)]
    assert [change.current for change in changes] == [
        JourneyStage.ONBOARDING,
        JourneyStage.ENGAGEMENT,
        JourneyStage.PROFICIENCY,
    ]
    assert tracker.stage_entry_times[JourneyStage.ONBOARDING] == 10.0


def test_trigger_out_of_order_is_ignored() -> None:
    tracker, _, _ = _build_tracker()
    tracker.record_event(JourneyEventType.FIRST_BOSS_DEFEATED, now=1.0)
    assert tracker.stage is JourneyStage.DISCOVERY


def test_stage_never_regresses_for_random_event_sequences() -> None:
    rng = RNG(2024)
    event_types = list(JourneyEventType)
    for _ in range(50):
        stage = JourneyStage.DISCOVERY
        for _ in range(40):
            updated = next_stage(stage, rng.choice(event_types))
            assert updated >= stage
            assert updated - stage <= 1
            stage = updated


def test_events_are_logged_to_analytics() -> None:
    tracker, _, sink = _build_tracker()
    tracker.record_event(JourneyEventType.FIRST_DIVE, "First dive", now=5.0)
    logged = sink.events("journey_event")
    assert logged[0]["event"] == "first_dive"
    assert logged[0]["stage"] == "discovery"


def test_depth_record_only_on_new_maximum() -> None:
    tracker, _, _ = _build_tracker()
    assert tracker.record_depth_reached(25.0, 1.0) is True
    assert tracker.record_depth_reached(20.0, 2.0) is False
    assert tracker.record_depth_reached(float("nan"), 3.0) is False
    assert tracker.deepest_depth == 25.0


def test_checkpoints_follow_interval() -> None:
    tracker, _, _ = _build_tracker()
    tracker.record_depth_reached(12.0, 5.0)
    assert tracker.tick(200.0) is False
    assert tracker.tick(300.0) is True
    assert tracker.tick(400.0) is False
    checkpoint = tracker.checkpoints[0]
    assert checkpoint.session_time == 300.0
    assert checkpoint.depth == 12.0


def test_report_flags_deaths_outpacing_missions() -> None:
    tracker, _, _ = _build_tracker()
    tracker.record_mission_complete("m1", 100.0, 0, 10.0)
    tracker.record_death(30.0, "eel", 50.0, 20.0)

    report = tracker.generate_report(120.0)

    assert report.death_count == 1
    assert report.total_play_time == pytest.approx(120.0)
    assert [point.type for point in report.pain_points] == [PainPointType.FREQUENT_DEATH]
    assert report.stage_progress == pytest.approx(0.1)
    assert report.recommendations == ["Finish the tutorial"]


def test_report_without_excess_deaths_has_no_pain_points() -> None:
    tracker, _, _ = _build_tracker()
    for index in range(2):
        tracker.record_mission_complete(f"m{index}", 100.0, 0, 10.0)
    tracker.record_death(30.0, "eel", 50.0, 20.0)
    assert tracker.generate_report(30.0).pain_points == []


def test_restore_reinstates_stage_and_counters() -> None:
    tracker, _, _ = _build_tracker()
    tracker.restore(
        JourneyStage.ENGAGEMENT,
        {JourneyStage.DISCOVERY: 0.0, JourneyStage.ONBOARDING: 5.0, JourneyStage.ENGAGEMENT: 9.0},
        deepest_depth=44.0,
        missions_completed=4,
    )
    tracker.record_mission_complete("m5", 100.0, 0, 50.0)
    assert tracker.stage is JourneyStage.PROFICIENCY
    assert tracker.deepest_depth == 44.0
