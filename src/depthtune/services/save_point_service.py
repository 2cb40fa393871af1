"""Save-point scheduling: when the host should persist progress."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict

from depthtune.core.types import SavePointKind
from depthtune.domain.defs import SavePointTuning
from depthtune.domain.depth import sanitize_depth
from depthtune.services.collaborators import Collaborators, call_safely
from depthtune.services.events import EventListeners, SavePointRequest

logger = logging.getLogger(__name__)

_INDICATOR_TEXT: Dict[str, str] = {
    "checkpoint": "Checkpoint saved",
    "safe_zone": "Safe zone saved",
}


class SavePointScheduler:
    """Emits SavePointRequests on a timer, on depth changes and in safe zones.

    The scheduler never writes anything itself; the SaveGateway collaborator
    receives each request together with a profile snapshot.
    """

    def __init__(
        self,
        *,
        tuning: SavePointTuning | None = None,
        collaborators: Collaborators | None = None,
        listeners: EventListeners | None = None,
        snapshot: Callable[[], Dict[str, Any]] | None = None,
    ) -> None:
        self._tuning = tuning or SavePointTuning()
        self._collaborators = collaborators or Collaborators()
        self._listeners = listeners or EventListeners()
        self._snapshot = snapshot
        self._last_save_time: float | None = None
        self._last_save_depth = 0.0
        self._in_safe_zone = False
        self._last_request: SavePointRequest | None = None

    @property
    def in_safe_zone(self) -> bool:
        return self._in_safe_zone

    @property
    def last_request(self) -> SavePointRequest | None:
        return self._last_request

    def start(self, now: float, depth: object = 0.0) -> None:
        self._last_save_time = now
        self._last_save_depth = sanitize_depth(depth)

    def tick(self, now: float, depth: object) -> SavePointRequest | None:
        current = sanitize_depth(depth)
        if self._last_save_time is None:
            self.start(now, current)
            return None
        tuning = self._tuning
        if tuning.enable_auto_save and now - self._last_save_time >= tuning.auto_save_interval:
            return self._create("auto_save", now, current)
        if abs(current - self._last_save_depth) >= tuning.depth_change_threshold:
            return self._create("depth_change", now, current, previous_depth=self._last_save_depth)
        return None

    def enter_safe_zone(self, now: float, depth: object) -> SavePointRequest | None:
        self._in_safe_zone = True
        if self._tuning.save_on_safe_zone:
            return self._create("safe_zone", now, sanitize_depth(depth))
        return None

    def exit_safe_zone(self) -> None:
        self._in_safe_zone = False

    def checkpoint(self, now: float, depth: object, label: str = "") -> SavePointRequest:
        return self._create("checkpoint", now, sanitize_depth(depth), label=label)

    def manual_save(self, now: float, depth: object) -> SavePointRequest | None:
        if not self._in_safe_zone:
            call_safely(
                "Manual save notice",
                self._collaborators.notifications.notify,
                "Manual saves are only available in a safe zone.",
                kind="warning",
            )
            return None
        return self._create("manual", now, sanitize_depth(depth))

    def _create(self, kind: SavePointKind, now: float, depth: float, **details: Any) -> SavePointRequest:
        payload: Dict[str, Any] = {key: value for key, value in details.items() if value not in ("", None)}
        if self._snapshot is not None:
            payload["profile"] = self._snapshot()
        request = SavePointRequest(kind=kind, time=now, depth=depth, details=payload)
        self._last_request = request
        self._last_save_time = now
        self._last_save_depth = depth
        call_safely("Save request", self._collaborators.saves.request_save, request)
        if kind in _INDICATOR_TEXT:
            call_safely("Save indicator", self._collaborators.notifications.notify, _INDICATOR_TEXT[kind], kind="save")
        self._listeners.emit(request)
        logger.debug("Save point %s at depth %.1f", kind, depth)
        return request
