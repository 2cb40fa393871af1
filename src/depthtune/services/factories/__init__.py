"""Factory helpers for wiring the engine."""

from .engine_factory import create_engine, with_overrides

__all__ = [
    "create_engine",
    "with_overrides",
]
