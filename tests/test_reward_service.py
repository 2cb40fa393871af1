from typing import Any, Dict, List

import pytest

from depthtune.core.scheduler import ContinuationQueue
from depthtune.domain.curves import Curve
from depthtune.domain.defs import MilestoneDef, RewardTuning
from depthtune.domain.rewards import MissionReward
from depthtune.services.events import EngineEvent, EventListeners, MilestoneReachedEvent, RewardGrantedEvent
from depthtune.services.reward_service import RewardTimer
from tests.helpers.fakes import build_collaborators

_MILESTONES = (
    MilestoneDef("first_dive", "first_dive", "First Dive", bonus_credits=50, bonus_xp=20),
    MilestoneDef("first_kill", "first_kill", "First Kill", bonus_xp=30),
    MilestoneDef(
        "first_mission",
        "first_mission",
        "First Contract",
        bonus_credits=100,
        unlock_system_id="upgrade_station",
        unlock_system_name="Upgrade Station",
    ),
    MilestoneDef("collector_10", "collection_milestone", "Collector", threshold=10, bonus_credits=40),
    MilestoneDef("depth_30", "depth_record", "Twilight", threshold=30),
    MilestoneDef("depth_60", "depth_record", "Midnight", threshold=60),
)


def _build_timer(**tuning: Any) -> tuple[RewardTimer, ContinuationQueue, Dict[str, Any], List[EngineEvent]]:
    queue = ContinuationQueue()
    collaborators, fakes = build_collaborators()
    events: List[EngineEvent] = []
    listeners = EventListeners()
    listeners.subscribe(events.append)
    timer = RewardTimer(
        queue,
        milestones=_MILESTONES,
        tuning=RewardTuning(**tuning),
        collaborators=collaborators,
        listeners=listeners,
    )
    return timer, queue, fakes, events


def test_first_dive_grants_milestone_once() -> None:
    timer, _, fakes, events = _build_timer()

    assert timer.on_dive_started(0.0) == ["first_dive"]
    assert timer.on_dive_started(10.0) == []

    assert fakes["inventory"].credits == [(50, "first_dive")]
    assert fakes["inventory"].xp == [(20, "first_dive")]
    assert ("Milestone reached: First Dive", "milestone") in fakes["notifications"].messages
    assert "milestone_reached" in fakes["cues"].played
    assert [event.milestone_id for event in events if isinstance(event, MilestoneReachedEvent)] == ["first_dive"]


def test_milestone_reached_is_idempotent() -> None:
    timer, _, fakes, _ = _build_timer()
    assert timer.on_milestone_reached("first_kill", 1.0) is True
    assert timer.on_milestone_reached("first_kill", 2.0) is False
    assert timer.on_milestone_reached("unknown", 2.0) is False
    assert fakes["inventory"].xp == [(30, "first_kill")]
    assert timer.achieved_milestones == frozenset({"first_kill"})


def test_mission_milestone_unlocks_system() -> None:
    timer, _, fakes, _ = _build_timer()
    timer.on_mission_completed(MissionReward("m1", credits=10), 0.0)
    assert fakes["unlocks"].unlocked == [("upgrade_station", "Upgrade Station")]


def test_collection_threshold_milestone() -> None:
    timer, _, fakes, _ = _build_timer(combo_window=0.0)
    timer.on_resource_collected("ore", 6, 60, 0.0)
    assert "collector_10" not in timer.achieved_milestones
    timer.on_resource_collected("ore", 4, 40, 100.0)
    assert "collector_10" in timer.achieved_milestones
    assert len(fakes["analytics"].events("resource_collected")) == 2


def test_resource_combo_counts_within_window_and_resets_after() -> None:
    timer, _, _, _ = _build_timer()
    results = [timer.on_resource_collected("ore", 1, 10, now) for now in (0.0, 2.0, 4.0)]
    assert [result.combo for result in results] == [1, 2, 3]
    assert results[-1].multiplier == pytest.approx(1.3)

    late = timer.on_resource_collected("ore", 1, 10, 20.0)
    assert late.combo == 1
    assert timer.resource_combo == 1


def test_kill_combo_grants_bonus_xp() -> None:
    timer, _, fakes, events = _build_timer()
    first = timer.on_enemy_defeated("mech_fish", 100, 20, now=0.0)
    second = timer.on_enemy_defeated("mech_fish", 100, 20, now=1.0)

    assert first.bonus_xp == 10
    assert second.bonus_xp == 20
    assert (20, "kill_combo") in fakes["inventory"].xp
    assert any(isinstance(event, RewardGrantedEvent) and event.reason == "kill_combo" for event in events)
    assert timer.kill_combo == 2


def test_combo_curve_replaces_linear_step() -> None:
    timer, _, _, _ = _build_timer(combo_curve=Curve.linear(0.0, 1.0), combo_normalization=10.0)
    assert timer.combo_multiplier(5) == pytest.approx(1.5)
    assert timer.combo_multiplier(50) == pytest.approx(2.0)


def test_zero_combo_normalization_saturates_curve() -> None:
    timer, _, _, _ = _build_timer(combo_curve=Curve.linear(0.0, 1.0), combo_normalization=0.0)
    assert timer.combo_multiplier(3) == pytest.approx(2.0)


def test_mission_reward_is_granted_after_delay() -> None:
    timer, queue, fakes, events = _build_timer(mission_reward_delay=1.0)
    timer.on_mission_completed(MissionReward("m1", credits=250, xp=40), 10.0)

    queue.run_due(10.5)
    assert (250, "m1") not in fakes["inventory"].credits

    queue.run_due(11.0)
    assert (250, "m1") in fakes["inventory"].credits
    assert (40, "m1") in fakes["inventory"].xp
    assert any(isinstance(event, RewardGrantedEvent) and event.reason == "mission:m1" for event in events)


def test_reset_drops_pending_mission_reward() -> None:
    timer, queue, fakes, _ = _build_timer()
    timer.on_mission_completed(MissionReward("m1", credits=250), 0.0)
    timer.reset()
    queue.run_due(5.0)
    assert (250, "m1") not in fakes["inventory"].credits


def test_depth_records_trigger_depth_milestones() -> None:
    timer, _, _, _ = _build_timer()
    assert timer.on_depth_reached(35.0, 0.0) == ["depth_30"]
    assert timer.on_depth_reached(20.0, 1.0) == []
    assert timer.on_depth_reached(65.0, 2.0) == ["depth_60"]


def test_restored_milestones_are_not_granted_again() -> None:
    timer, _, fakes, _ = _build_timer()
    timer.restore_achieved(["first_dive"])
    timer.restore_deepest_depth(40.0)

    assert timer.on_dive_started(0.0) == []
    assert timer.on_depth_reached(35.0, 0.0) == []
    assert fakes["inventory"].credits == []
