from typing import List

import pytest

from depthtune.core.rng import RNG
from depthtune.core.scheduler import ContinuationQueue
from depthtune.domain.defs import EncounterSize, EncounterTuning
from depthtune.domain.enemy_scaling import ScaledEnemyStats
from depthtune.services.encounter_service import EncounterThrottle
from depthtune.services.events import (
    CombatEndedEvent,
    CombatStartedEvent,
    EncounterRateChangedEvent,
    EncounterStartedEvent,
    EngineEvent,
    EventListeners,
)

_STATS = ScaledEnemyStats(
    profile_id="mech_fish",
    max_health=100.0,
    damage=10.0,
    move_speed=5.0,
    attack_speed=1.0,
    xp_reward=75,
    credit_reward=26,
    spawn_weight=1.0,
)


class _FixedScaler:
    def spawn_stats(self, depth: object, rng: RNG) -> ScaledEnemyStats:
        return _STATS


class _RecordingSpawner:
    def __init__(self) -> None:
        self.spawned: List[int] = []

    def spawn(self, stats: ScaledEnemyStats, *, encounter_id: int) -> None:
        self.spawned.append(encounter_id)


def _build_throttle(**tuning) -> tuple[EncounterThrottle, ContinuationQueue, _RecordingSpawner, List[EngineEvent]]:
    queue = ContinuationQueue()
    spawner = _RecordingSpawner()
    events: List[EngineEvent] = []
    listeners = EventListeners()
    listeners.subscribe(events.append)
    throttle = EncounterThrottle(
        RNG(11),
        queue,
        tuning=EncounterTuning(**tuning),
        scaler=_FixedScaler(),
        spawner=spawner,
        listeners=listeners,
    )
    throttle.reset(0.0)
    return throttle, queue, spawner, events


def test_combat_start_and_end_set_tension_and_emit_events() -> None:
    throttle, _, _, events = _build_throttle()

    throttle.start_combat(1.0)
    assert throttle.in_combat
    assert throttle.tension == pytest.approx(0.7)

    throttle.end_combat(4.0)
    assert not throttle.in_combat
    assert throttle.tension == pytest.approx(0.5)
    assert throttle.last_combat_time == 4.0

    assert isinstance(events[0], CombatStartedEvent)
    assert isinstance(events[1], CombatEndedEvent)
    assert events[1].duration == pytest.approx(3.0)


def test_repeated_start_combat_is_ignored() -> None:
    throttle, _, _, events = _build_throttle()
    throttle.start_combat(1.0)
    throttle.start_combat(2.0)
    assert len([event for event in events if isinstance(event, CombatStartedEvent)]) == 1


def test_tension_stays_within_bounds() -> None:
    throttle, _, _, _ = _build_throttle(base_spawn_chance=0.0)
    throttle.start_combat(0.0)
    now = 0.0
    for _ in range(50):
        now += 1.0
        throttle.tick(now, 1.0, 50.0)
        assert 0.0 <= throttle.tension <= 1.0
    assert throttle.tension == pytest.approx(1.0)

    throttle.end_combat(now)
    for _ in range(100):
        now += 1.0
        throttle.tick(now, 1.0, 50.0)
        assert 0.0 <= throttle.tension <= 1.0
    assert throttle.tension == pytest.approx(0.0)


def test_no_encounter_during_cooldown() -> None:
    throttle, _, _, _ = _build_throttle(base_spawn_chance=100.0)
    for second in range(1, 15):
        assert throttle.tick(float(second), 1.0, 50.0) is False
    assert throttle.spawn_chance(10.0, 50.0) == 0.0


def test_certain_spawn_chance_starts_encounter_after_cooldown() -> None:
    throttle, _, _, events = _build_throttle(base_spawn_chance=100.0)
    assert throttle.tick(60.0, 1.0, 50.0) is True
    assert throttle.in_combat
    assert throttle.encounter_count == 1
    assert any(isinstance(event, EncounterStartedEvent) for event in events)


def test_forced_encounter_spawns_staggered_enemies() -> None:
    throttle, queue, spawner, events = _build_throttle(
        sizes=(EncounterSize("pack", 1.0, 3, 3),),
    )
    encounter_id = throttle.force_encounter("pack", 10.0, 40.0)

    assert queue.run_due(10.0) == 1
    assert spawner.spawned == [encounter_id]
    queue.run_due(20.0)
    assert spawner.spawned == [encounter_id] * 3
    started = [event for event in events if isinstance(event, EncounterStartedEvent)]
    assert started[0].enemy_count == 3
    assert throttle.in_combat


def test_unknown_size_falls_back_to_first_size() -> None:
    throttle, _, _, events = _build_throttle()
    throttle.force_encounter("gigantic", 0.0)
    started = [event for event in events if isinstance(event, EncounterStartedEvent)]
    assert started[0].size == "small"


def test_reset_drops_pending_spawns() -> None:
    throttle, queue, spawner, _ = _build_throttle(sizes=(EncounterSize("pack", 1.0, 3, 3),))
    throttle.force_encounter("pack", 10.0)
    throttle.reset(10.0)
    queue.run_due(100.0)
    assert spawner.spawned == []


def test_encounter_rate_is_clamped_and_reported() -> None:
    throttle, _, _, events = _build_throttle()
    assert throttle.increase_encounter_rate(10.0, "test") == 2.0
    assert throttle.reduce_encounter_rate(10.0, "test") == 0.5
    changes = [event for event in events if isinstance(event, EncounterRateChangedEvent)]
    assert [change.encounter_rate for change in changes] == [2.0, 0.5]
    throttle.reduce_encounter_rate(1.0)
    assert len([event for event in events if isinstance(event, EncounterRateChangedEvent)]) == 2
