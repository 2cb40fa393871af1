import json
import logging
from pathlib import Path

import pytest

from depthtune.data import paths
from depthtune.domain.defs import EngineTuning, PenaltyTuning
from depthtune.domain.enemy_scaling import ScaledEnemyStats
from depthtune.domain.journey import JourneyEventType, JourneyStage
from depthtune.domain.pain_points import PainPointType
from depthtune.domain.penalty import DeathContext
from depthtune.domain.rewards import MissionReward
from depthtune.services import FactoryError, ProfileSaveService
from depthtune.services.collaborators import Collaborators
from depthtune.services.controllers import ExperienceEngine
from depthtune.services.controllers.engine_controller import PENALTY_FAILED_MESSAGE
from depthtune.services.factories import create_engine, with_overrides
from tests.helpers.fakes import FailingAnalytics, FailingInventory, build_collaborators


@pytest.fixture(autouse=True)
def _shipped_definitions(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(paths.DEFINITIONS_ENV_VAR, raising=False)


def test_create_engine_rejects_empty_player_id() -> None:
    with pytest.raises(FactoryError):
        create_engine("")


def test_create_engine_wraps_data_errors(tmp_path: Path) -> None:
    with pytest.raises(FactoryError):
        create_engine("diver", base_path=tmp_path)


def test_with_overrides_rejects_unknown_sections() -> None:
    with pytest.raises(FactoryError):
        with_overrides(EngineTuning(), weather=None)


def test_with_overrides_replaces_whole_section() -> None:
    tuning = with_overrides(EngineTuning(), penalty=PenaltyTuning(penalty_apply_delay=2.0))

    assert tuning.penalty.penalty_apply_delay == 2.0
    assert tuning.difficulty == EngineTuning().difficulty


def test_death_penalty_reaches_inventory_after_delay() -> None:
    engine, fakes = _build_engine()
    engine.start_session(0.0, 0.0, is_new_player=True)
    engine.start_dive(0.0)
    engine.tick(10.0, 0.1, depth=50.0)

    report = engine.apply_death_penalty(DeathContext(depth=50.0, session_duration=10.0))

    assert not report.no_penalty
    assert fakes["inventory"].penalties == []
    engine.tick(10.4, 0.4, depth=50.0)
    assert fakes["inventory"].penalties == []
    engine.tick(10.5, 0.1, depth=50.0)
    assert fakes["inventory"].penalties == [report]
    assert fakes["analytics"].events("death_penalty")[0]["depth"] == 50.0


def test_death_penalty_failure_notifies_player() -> None:
    engine, fakes = _build_engine(inventory=FailingInventory())
    engine.start_session(0.0)

    engine.apply_death_penalty(DeathContext(depth=40.0))
    engine.tick(1.0, 1.0)

    assert (PENALTY_FAILED_MESSAGE, "error") in fakes["notifications"].messages


def test_death_penalty_without_inventory_is_not_scheduled() -> None:
    engine = create_engine("diver", collaborators=Collaborators())
    engine.start_session(0.0)
    pending = len(engine.components.queue)

    report = engine.apply_death_penalty(DeathContext(depth=40.0))

    assert not report.no_penalty
    assert len(engine.components.queue) == pending


def test_ending_session_drops_pending_penalty() -> None:
    engine, fakes = _build_engine()
    engine.start_session(0.0)

    engine.apply_death_penalty(DeathContext(depth=40.0))
    engine.end_session(0.2)
    engine.tick(1.0, 0.8)

    assert fakes["inventory"].penalties == []


def test_first_dive_grants_milestone() -> None:
    engine, fakes = _build_engine()
    engine.start_session(0.0, is_new_player=True)

    engine.start_dive(0.0)

    assert (50, "first_dive") in fakes["inventory"].credits
    assert ("Milestone reached: First Dive", "milestone") in fakes["notifications"].messages
    assert [event.event_type for event in engine.components.journey.events][:2] == [
        JourneyEventType.FIRST_LAUNCH,
        JourneyEventType.FIRST_DIVE,
    ]


def test_mission_reward_lands_later_and_advances_journey() -> None:
    engine, fakes = _build_engine()
    engine.start_session(0.0)
    engine.record_journey_event(JourneyEventType.TUTORIAL_COMPLETE)

    engine.on_mission_completed(MissionReward("m1", credits=200, xp=10), completion_time=120.0, now=5.0)

    assert engine.journey_stage is JourneyStage.ENGAGEMENT
    assert (100, "first_mission") in fakes["inventory"].credits
    assert ("upgrade_station", "Upgrade Station") in fakes["unlocks"].unlocked
    engine.tick(5.5, 0.5)
    assert (200, "m1") not in fakes["inventory"].credits
    engine.tick(6.0, 0.5)
    assert (200, "m1") in fakes["inventory"].credits
    assert (10, "m1") in fakes["inventory"].xp


def test_success_counts_as_progress() -> None:
    engine, _ = _build_engine()
    engine.start_session(0.0, 0.0)

    engine.record_success(120.0, 0.0, now=590.0)
    pain_points = []
    for second in range(591, 682):
        pain_points.extend(engine.tick(float(second), 1.0).pain_points)

    assert not [point for point in pain_points if point.type is PainPointType.NO_PROGRESS]
    assert JourneyEventType.ACTIVITY_SUCCESS in [event.event_type for event in engine.components.journey.events]


def test_first_dive_event_is_recorded_once_per_player() -> None:
    engine, _ = _build_engine()
    engine.start_session(0.0, is_new_player=True)
    engine.start_dive(0.0)
    state = engine.export_profile()

    resumed, _ = _build_engine()
    resumed.restore_profile(state)
    resumed.start_session(100.0)
    resumed.start_dive(100.0)

    assert state.dives_started == 1
    assert JourneyEventType.FIRST_DIVE not in [event.event_type for event in resumed.components.journey.events]


def test_failing_analytics_does_not_reach_gameplay() -> None:
    engine, _ = _build_engine(analytics=FailingAnalytics())
    engine.start_session(0.0)

    result = engine.on_enemy_defeated("mech_fish", 10, 5, now=1.0)
    report = engine.apply_death_penalty(DeathContext(depth=20.0))

    assert result.combo == 1
    assert not report.no_penalty


def test_checkpoint_is_sent_to_save_gateway() -> None:
    engine, fakes = _build_engine()
    engine.start_session(0.0)
    engine.tick(3.0, 3.0, depth=15.0)

    request = engine.checkpoint("boss_gate")

    assert request.kind == "checkpoint"
    assert request.details["label"] == "boss_gate"
    assert fakes["saves"].requests[-1] is request


def test_tick_without_session_skips_session_controllers() -> None:
    engine, _ = _build_engine()

    report = engine.tick(1.0, 1.0, "combat", depth=20.0)

    assert report.now == 1.0
    assert not report.pacing_checked
    assert not report.encounter_started
    assert report.save_request is None


def test_failing_tick_step_is_logged_and_skipped(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    engine, _ = _build_engine()
    engine.start_session(0.0)

    def _broken(dt: float, activity: str) -> bool:
        raise RuntimeError("boom")

    monkeypatch.setattr(engine.components.pacing, "tick", _broken)
    with caplog.at_level(logging.ERROR):
        report = engine.tick(1.0, 1.0)

    assert not report.pacing_checked
    assert "Tick step 'pacing' failed" in caplog.text


def test_dive_reports_depth_change_save_points() -> None:
    engine, fakes = _build_engine()
    engine.start_session(0.0)
    engine.start_dive(0.0, 0.0)

    report = engine.tick(5.0, 5.0, depth=25.0)

    assert report.save_request is not None
    assert report.save_request.kind == "depth_change"
    assert report.save_request.details["profile"]["metadata"]["player_id"] == "diver"
    assert fakes["saves"].requests == [report.save_request]


def test_queries_resolve_definition_ids() -> None:
    engine, _ = _build_engine()

    assert engine.value("scrap_metal", 0.0) > 0
    with pytest.raises(KeyError):
        engine.value("moon_rock", 0.0)
    assert isinstance(engine.scale_stats("mech_fish", 30.0), ScaledEnemyStats)
    assert engine.get_current_boss_phase("iron_claw_beast", 1.0).name == "guarded"
    assert engine.get_current_boss_phase("iron_claw_beast", 0.6).name == "aggressive"
    assert engine.get_difficulty_at_depth(100.0) > engine.get_difficulty_at_depth(0.0)


def test_profile_round_trips_through_save_service() -> None:
    engine, _ = _build_engine()
    engine.start_session(0.0, is_new_player=True)
    engine.start_dive(0.0)
    engine.record_journey_event(JourneyEventType.TUTORIAL_COMPLETE)
    engine.on_mission_completed(MissionReward("m1", credits=50), now=2.0)
    engine.tick(3.0, 1.0, depth=35.0)
    engine.value("copper_ore", 35.0)
    state = engine.export_profile()
    saves = ProfileSaveService()

    payload = json.loads(json.dumps(saves.serialize(state)))
    restored_state, _ = saves.deserialize(payload)
    fresh, _ = _build_engine()
    fresh.restore_profile(restored_state)

    assert fresh.export_profile() == state
    assert fresh.journey_stage is JourneyStage.ENGAGEMENT
    assert "first_mission" in state.achieved_milestones
    assert state.deepest_depth == 35.0


def test_reset_difficulty_returns_to_neutral() -> None:
    engine, _ = _build_engine()
    engine.difficulty.decrease_difficulty(0.3)

    engine.reset_difficulty()

    assert engine.difficulty.dynamic_adjustment == 1.0
    assert engine.difficulty.skill_factor == 1.0


def test_restore_profile_rejects_other_player() -> None:
    engine, _ = _build_engine()
    other, _ = _build_engine("someone_else")

    with pytest.raises(ValueError):
        engine.restore_profile(other.export_profile())


def _build_engine(player_id: str = "diver", **overrides: object) -> tuple[ExperienceEngine, dict]:
    collaborators, fakes = build_collaborators(**overrides)
    engine = create_engine(player_id, seed=7, collaborators=collaborators)
    return engine, fakes
