"""Outbound collaborator protocols.

The engine never owns inventory, UI, audio, spawning or persistence. It
calls these narrow interfaces instead. Every collaborator is optional: a
missing one is replaced by a stand-in that logs the dropped call and
returns None.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

from depthtune.core.analytics import LoggingAnalyticsSink
from depthtune.domain.enemy_scaling import ScaledEnemyStats
from depthtune.domain.penalty import DeathReport
from depthtune.services.errors import CollaboratorError

logger = logging.getLogger(__name__)


class InventoryGateway(Protocol):
    def apply_death_penalty(self, report: DeathReport) -> None:
        ...

    def grant_credits(self, amount: int, reason: str) -> None:
        ...

    def grant_xp(self, amount: int, reason: str) -> None:
        ...


class NotificationGateway(Protocol):
    def notify(self, message: str, *, kind: str = "info") -> None:
        ...

    def show_hint(self, text: str) -> None:
        ...


class UnlockGateway(Protocol):
    def unlock(self, system_id: str, name: str) -> None:
        ...


class CueGateway(Protocol):
    def play(self, cue_id: str) -> None:
        ...


class EnemySpawner(Protocol):
    def spawn(self, stats: ScaledEnemyStats, *, encounter_id: int) -> None:
        ...


class DeathRateSource(Protocol):
    def death_rate_at(self, depth: float) -> float | None:
        ...


class SaveGateway(Protocol):
    def request_save(self, request: Any) -> None:
        ...


class AnalyticsSink(Protocol):
    def log(self, event: str, fields: Mapping[str, Any]) -> None:
        ...


class _MissingCollaborator:
    """Stand-in for an absent collaborator: every method call is a logged no-op."""

    def __init__(self, role: str) -> None:
        self._role = role

    def __getattr__(self, method: str) -> Any:
        if method.startswith("__"):
            raise AttributeError(method)

        def _dropped(*args: Any, **kwargs: Any) -> None:
            logger.info("No %s collaborator configured; dropped %s().", self._role, method)
            return None

        return _dropped


_ROLES = ("inventory", "notifications", "unlocks", "cues", "spawner", "death_rates", "saves")


@dataclass
class Collaborators:
    inventory: InventoryGateway | None = None
    notifications: NotificationGateway | None = None
    unlocks: UnlockGateway | None = None
    cues: CueGateway | None = None
    spawner: EnemySpawner | None = None
    death_rates: DeathRateSource | None = None
    saves: SaveGateway | None = None
    analytics: AnalyticsSink = field(default_factory=LoggingAnalyticsSink)
    _configured: frozenset = field(init=False, repr=False, default=frozenset())

    def __post_init__(self) -> None:
        configured = set()
        for role in _ROLES:
            if getattr(self, role) is None:
                setattr(self, role, _MissingCollaborator(role))
            else:
                configured.add(role)
        self._configured = frozenset(configured)

    def has(self, role: str) -> bool:
        return role in self._configured


def call_safely(description: str, func: Any, *args: Any, **kwargs: Any) -> bool:
    """Invoke a collaborator method; failures are logged and reported as False."""
    try:
        func(*args, **kwargs)
    except CollaboratorError as exc:
        logger.warning("%s failed: %s", description, exc)
        return False
    except Exception:
        logger.exception("%s raised unexpectedly.", description)
        return False
    return True
