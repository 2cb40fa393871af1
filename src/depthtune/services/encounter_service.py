"""Combat encounter throttling driven by a tension signal."""
from __future__ import annotations

import logging

from depthtune.core.rng import RNG
from depthtune.core.scheduler import ContinuationQueue, Generation
from depthtune.domain.curves import clamp, clamp01, move_towards
from depthtune.domain.defs import EncounterSize, EncounterTuning
from depthtune.domain.depth import normalize_depth
from depthtune.services.collaborators import EnemySpawner
from depthtune.services.enemy_scaling_service import EnemyScaler
from depthtune.services.events import (
    CombatEndedEvent,
    CombatStartedEvent,
    EncounterRateChangedEvent,
    EncounterStartedEvent,
    EventListeners,
)

logger = logging.getLogger(__name__)


class EncounterThrottle:
    """Decides when the world throws a new fight at the player.

    Tension climbs during combat and drains slowly afterwards; high tension
    dampens the spawn chance so fights do not chain back to back.
    """

    def __init__(
        self,
        rng: RNG,
        queue: ContinuationQueue,
        *,
        tuning: EncounterTuning | None = None,
        scaler: EnemyScaler | None = None,
        spawner: EnemySpawner | None = None,
        listeners: EventListeners | None = None,
    ) -> None:
        self._rng = rng
        self._queue = queue
        self._tuning = tuning or EncounterTuning()
        self._scaler = scaler
        self._spawner = spawner
        self._listeners = listeners or EventListeners()
        self._tension = 0.0
        self._encounter_rate = 1.0
        self._in_combat = False
        self._combat_started_at: float | None = None
        self._last_combat_time = 0.0
        self._encounter_count = 0
        self._current_encounter = Generation()

    @property
    def tension(self) -> float:
        return self._tension

    @property
    def encounter_rate(self) -> float:
        return self._encounter_rate

    @property
    def in_combat(self) -> bool:
        return self._in_combat

    @property
    def last_combat_time(self) -> float:
        return self._last_combat_time

    @property
    def encounter_count(self) -> int:
        return self._encounter_count

    def reset(self, now: float) -> None:
        """Fresh session: neutral rate, no tension, pending spawns dropped."""
        self._tension = 0.0
        self._encounter_rate = 1.0
        self._in_combat = False
        self._combat_started_at = None
        self._last_combat_time = now
        self._current_encounter.bump()

    def spawn_chance(self, now: float, depth: object) -> float:
        tuning = self._tuning
        since_last = now - self._last_combat_time
        if tuning.max_spawn_interval > 0:
            time_factor = clamp01((since_last - tuning.encounter_cooldown) / tuning.max_spawn_interval)
        else:
            time_factor = 1.0
        tension_factor = 1.0 - self._tension * tuning.tension_spawn_dampening
        depth_factor = 1.0 + normalize_depth(depth)
        return tuning.base_spawn_chance * self._encounter_rate * time_factor * tension_factor * depth_factor

    def tick(self, now: float, dt: float, depth: object) -> bool:
        """Advance tension and roll for an encounter. Returns True when one started."""
        if dt != dt or dt <= 0:
            return False
        tuning = self._tuning
        if self._in_combat:
            self._tension = move_towards(self._tension, 1.0, tuning.tension_rise_rate * dt)
            return False
        self._tension = move_towards(self._tension, 0.0, tuning.tension_decay_rate * dt)
        if now - self._last_combat_time < tuning.encounter_cooldown:
            return False
        if self._rng.random() < self.spawn_chance(now, depth) * dt:
            self._start_encounter(self._draw_size(), now, depth)
            return True
        return False

    def force_encounter(self, size_name: str, now: float, depth: object = 0.0) -> int:
        size = next((size for size in self._tuning.sizes if size.name == size_name), None)
        if size is None:
            logger.warning("Unknown encounter size '%s'; using '%s'.", size_name, self._tuning.sizes[0].name)
            size = self._tuning.sizes[0]
        return self._start_encounter(size, now, depth)

    def start_combat(self, now: float) -> None:
        if self._in_combat:
            return
        self._in_combat = True
        self._combat_started_at = now
        self._tension = self._tuning.combat_start_tension
        logger.debug("Combat started at %.1f", now)
        self._listeners.emit(CombatStartedEvent(time=now, tension=self._tension))

    def end_combat(self, now: float) -> None:
        if not self._in_combat:
            return
        started = self._combat_started_at if self._combat_started_at is not None else now
        self._in_combat = False
        self._combat_started_at = None
        self._last_combat_time = now
        self._tension = self._tuning.post_combat_tension
        logger.debug("Combat ended at %.1f", now)
        self._listeners.emit(CombatEndedEvent(time=now, duration=max(0.0, now - started)))

    def increase_encounter_rate(self, amount: float, reason: str = "manual") -> float:
        return self._set_rate(self._encounter_rate + abs(amount), reason)

    def reduce_encounter_rate(self, amount: float, reason: str = "manual") -> float:
        return self._set_rate(self._encounter_rate - abs(amount), reason)

    def _set_rate(self, value: float, reason: str) -> float:
        tuning = self._tuning
        updated = clamp(value, tuning.min_encounter_rate, tuning.max_encounter_rate)
        if updated != self._encounter_rate:
            self._encounter_rate = updated
            logger.info("Encounter rate set to %.2f (%s)", updated, reason)
            self._listeners.emit(EncounterRateChangedEvent(encounter_rate=updated, reason=reason))
        return self._encounter_rate

    def _draw_size(self) -> EncounterSize:
        sizes = self._tuning.sizes
        weights = [size.probability for size in sizes]
        if sum(weights) <= 0:
            return sizes[0]
        return self._rng.weighted_choice(sizes, weights)

    def _start_encounter(self, size: EncounterSize, now: float, depth: object) -> int:
        self._encounter_count += 1
        encounter_id = self._encounter_count
        enemy_count = self._rng.randint(size.min_enemies, size.max_enemies)
        self._current_encounter.bump()
        guard = self._current_encounter.guard()
        deadline = now
        for index in range(enemy_count):
            self._queue.schedule(
                deadline,
                lambda: self._spawn_one(encounter_id, depth),
                label=f"encounter-{encounter_id}-spawn-{index}",
                guard=guard,
            )
            deadline += self._rng.uniform(self._tuning.min_spawn_stagger, self._tuning.max_spawn_stagger)
        logger.info("Encounter %d started: %s, %d enemies", encounter_id, size.name, enemy_count)
        self._listeners.emit(
            EncounterStartedEvent(encounter_id=encounter_id, size=size.name, enemy_count=enemy_count, time=now)
        )
        self.start_combat(now)
        return encounter_id

    def _spawn_one(self, encounter_id: int, depth: object) -> None:
        if self._scaler is None or self._spawner is None:
            logger.debug("Encounter %d: no scaler or spawner configured.", encounter_id)
            return
        stats = self._scaler.spawn_stats(depth, self._rng)
        if stats is None:
            logger.debug("Encounter %d: no enemy eligible at depth %s.", encounter_id, depth)
            return
        self._spawner.spawn(stats, encounter_id=encounter_id)
