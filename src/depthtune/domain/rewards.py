"""Reward payloads and combo counting."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict


@dataclass(slots=True)
class ComboState:
    count: int = 0
    last_event_time: float | None = None

    def register(self, now: float, window: float) -> int:
        """Count an event at `now`; a gap longer than `window` starts a fresh combo at 1."""
        if self.last_event_time is None or now - self.last_event_time > window:
            self.count = 1
        else:
            self.count += 1
        self.last_event_time = now
        return self.count

    def reset(self) -> None:
        self.count = 0
        self.last_event_time = None


@dataclass(frozen=True, slots=True)
class ComboResult:
    combo: int
    multiplier: float
    bonus_xp: int = 0


@dataclass(frozen=True, slots=True)
class LootItem:
    item_id: str
    amount: int = 1
    drop_chance: float = 1.0


@dataclass(slots=True)
class MissionReward:
    mission_id: str
    mission_name: str = ""
    credits: int = 0
    xp: int = 0
    resources: Dict[str, int] = field(default_factory=dict)
