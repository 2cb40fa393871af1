"""Combo timing, delayed mission rewards and one-time milestones."""
from __future__ import annotations

import logging
from typing import Dict, FrozenSet, Iterable, List, Sequence

from depthtune.core.scheduler import ContinuationHandle, ContinuationQueue, Generation
from depthtune.domain.curves import clamp01
from depthtune.domain.defs import MilestoneDef, RewardTuning
from depthtune.domain.depth import sanitize_depth
from depthtune.domain.rewards import ComboResult, ComboState, LootItem, MissionReward
from depthtune.services.collaborators import Collaborators, call_safely
from depthtune.services.events import EventListeners, MilestoneReachedEvent, RewardGrantedEvent

logger = logging.getLogger(__name__)

# Counter each milestone type is checked against.
_COUNTER_TYPES: Dict[str, str] = {
    "first_dive": "dives",
    "first_collection": "collections",
    "collection_milestone": "collections",
    "first_kill": "kills",
    "kill_milestone": "kills",
    "first_mission": "missions",
    "mission_milestone": "missions",
    "depth_record": "depth",
}


class RewardTimer:
    """Turns gameplay events into combo bonuses, reward grants and milestones."""

    def __init__(
        self,
        queue: ContinuationQueue,
        *,
        milestones: Iterable[MilestoneDef] = (),
        tuning: RewardTuning | None = None,
        collaborators: Collaborators | None = None,
        listeners: EventListeners | None = None,
    ) -> None:
        self._queue = queue
        self._tuning = tuning or RewardTuning()
        self._collaborators = collaborators or Collaborators()
        self._listeners = listeners or EventListeners()
        self._milestones: Dict[str, MilestoneDef] = {milestone.id: milestone for milestone in milestones}
        self._achieved: set[str] = set()
        self._resource_combo = ComboState()
        self._kill_combo = ComboState()
        self._counters: Dict[str, float] = {"dives": 0, "collections": 0, "kills": 0, "missions": 0, "depth": 0.0}
        self._generation = Generation()

    @property
    def achieved_milestones(self) -> FrozenSet[str]:
        return frozenset(self._achieved)

    @property
    def resource_combo(self) -> int:
        return self._resource_combo.count

    @property
    def kill_combo(self) -> int:
        return self._kill_combo.count

    def combo_multiplier(self, combo: int) -> float:
        tuning = self._tuning
        if tuning.combo_curve is None:
            return 1.0 + combo * tuning.linear_combo_step
        ratio = combo / tuning.combo_normalization if tuning.combo_normalization > 0 else 1.0
        return 1.0 + tuning.combo_curve(clamp01(ratio))

    def on_dive_started(self, now: float) -> List[str]:
        self._counters["dives"] += 1
        return self._check_milestones(("first_dive",), now)

    def on_resource_collected(self, resource_id: str, amount: int, value: int, now: float) -> ComboResult:
        combo = self._resource_combo.register(now, self._tuning.combo_window)
        self._counters["collections"] += max(0, amount)
        call_safely("Collection cue", self._collaborators.cues.play, "resource_collect")
        call_safely(
            "Analytics log",
            self._collaborators.analytics.log,
            "resource_collected",
            {"resource_id": resource_id, "amount": amount, "value": value, "combo": combo},
        )
        self._check_milestones(("first_collection", "collection_milestone"), now)
        return ComboResult(combo=combo, multiplier=self.combo_multiplier(combo))

    def on_enemy_defeated(
        self,
        enemy_id: str,
        xp: int,
        credits: int,
        loot: Sequence[LootItem] = (),
        now: float = 0.0,
    ) -> ComboResult:
        combo = self._kill_combo.register(now, self._tuning.combo_window)
        multiplier = self.combo_multiplier(combo)
        bonus_xp = max(0, round(xp * (multiplier - 1.0)))
        self._counters["kills"] += 1
        if bonus_xp > 0:
            call_safely("Kill combo XP grant", self._collaborators.inventory.grant_xp, bonus_xp, "kill_combo")
            self._listeners.emit(RewardGrantedEvent(reason="kill_combo", credits=0, xp=bonus_xp, multiplier=multiplier))
        call_safely(
            "Analytics log",
            self._collaborators.analytics.log,
            "enemy_defeated",
            {
                "enemy_id": enemy_id,
                "xp": xp,
                "credits": credits,
                "loot": [item.item_id for item in loot],
                "combo": combo,
                "bonus_xp": bonus_xp,
            },
        )
        self._check_milestones(("first_kill", "kill_milestone"), now)
        return ComboResult(combo=combo, multiplier=multiplier, bonus_xp=bonus_xp)

    def on_mission_completed(self, reward: MissionReward, now: float) -> ContinuationHandle:
        """Count the mission now; the reward itself lands after `mission_reward_delay`."""
        self._counters["missions"] += 1
        call_safely("Mission cue", self._collaborators.cues.play, "mission_complete")
        handle = self._queue.schedule(
            now + self._tuning.mission_reward_delay,
            lambda: self._grant_mission_reward(reward),
            label=f"mission-reward-{reward.mission_id}",
            guard=self._generation.guard(),
        )
        self._check_milestones(("first_mission", "mission_milestone"), now)
        return handle

    def on_depth_reached(self, depth: object, now: float) -> List[str]:
        current = sanitize_depth(depth)
        if current <= self._counters["depth"]:
            return []
        self._counters["depth"] = current
        return self._check_milestones(("depth_record",), now)

    def on_milestone_reached(self, milestone_id: str, now: float) -> bool:
        """Grant a milestone once. Returns False if unknown or already achieved."""
        if milestone_id in self._achieved:
            return False
        milestone = self._milestones.get(milestone_id)
        if milestone is None:
            logger.warning("Unknown milestone '%s'.", milestone_id)
            return False
        self._achieved.add(milestone_id)

        inventory = self._collaborators.inventory
        if milestone.bonus_credits > 0:
            call_safely("Milestone credit grant", inventory.grant_credits, milestone.bonus_credits, milestone_id)
        if milestone.bonus_xp > 0:
            call_safely("Milestone XP grant", inventory.grant_xp, milestone.bonus_xp, milestone_id)
        if milestone.unlock_system_id:
            call_safely(
                "System unlock",
                self._collaborators.unlocks.unlock,
                milestone.unlock_system_id,
                milestone.unlock_system_name or milestone.unlock_system_id,
            )
        call_safely(
            "Milestone toast",
            self._collaborators.notifications.notify,
            f"Milestone reached: {milestone.title}",
            kind="milestone",
        )
        call_safely("Milestone cue", self._collaborators.cues.play, "milestone_reached")
        call_safely(
            "Analytics log",
            self._collaborators.analytics.log,
            "milestone_reached",
            {
                "milestone_id": milestone_id,
                "type": milestone.milestone_type,
                "bonus_credits": milestone.bonus_credits,
                "bonus_xp": milestone.bonus_xp,
            },
        )
        self._listeners.emit(
            MilestoneReachedEvent(
                milestone_id=milestone_id,
                title=milestone.title,
                bonus_credits=milestone.bonus_credits,
                bonus_xp=milestone.bonus_xp,
                time=now,
            )
        )
        logger.info("Milestone '%s' reached.", milestone_id)
        return True

    def reset(self) -> None:
        """Drop combos and pending reward grants; achieved milestones stay."""
        self._resource_combo.reset()
        self._kill_combo.reset()
        self._generation.bump()

    def restore_achieved(self, milestone_ids: Iterable[str]) -> None:
        self._achieved = {str(milestone_id) for milestone_id in milestone_ids}

    def restore_deepest_depth(self, depth: object) -> None:
        self._counters["depth"] = sanitize_depth(depth)

    def _grant_mission_reward(self, reward: MissionReward) -> None:
        inventory = self._collaborators.inventory
        if reward.credits > 0:
            call_safely("Mission credit grant", inventory.grant_credits, reward.credits, reward.mission_id)
        if reward.xp > 0:
            call_safely("Mission XP grant", inventory.grant_xp, reward.xp, reward.mission_id)
        self._listeners.emit(RewardGrantedEvent(reason=f"mission:{reward.mission_id}", credits=reward.credits, xp=reward.xp))
        call_safely(
            "Analytics log",
            self._collaborators.analytics.log,
            "mission_reward_granted",
            {"mission_id": reward.mission_id, "credits": reward.credits, "xp": reward.xp},
        )

    def _check_milestones(self, types: Sequence[str], now: float) -> List[str]:
        reached: List[str] = []
        for milestone in sorted(self._milestones.values(), key=lambda item: (item.threshold, item.id)):
            if milestone.milestone_type not in types or milestone.id in self._achieved:
                continue
            counter = _COUNTER_TYPES.get(milestone.milestone_type)
            if counter is None or self._counters[counter] < milestone.threshold:
                continue
            if self.on_milestone_reached(milestone.id, now):
                reached.append(milestone.id)
        return reached
