"""UI-agnostic controllers for engine orchestration."""
from __future__ import annotations

from .engine_controller import EngineComponents, ExperienceEngine, TickReport

__all__ = [
    "EngineComponents",
    "ExperienceEngine",
    "TickReport",
]
