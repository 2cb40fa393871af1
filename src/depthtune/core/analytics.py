"""Logging setup and analytics sinks.

Analytics records are flat key/value mappings tagged with an event name.
They are emitted through the standard logging stack so that whatever
handler the host installs (console, file, aggregator) receives them.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple

ANALYTICS_LOGGER_NAME = "depthtune.analytics"
CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def normalize_log_level(value: object, default: str = "INFO") -> str:
    if isinstance(value, str) and value.strip().upper() in _VALID_LEVELS:
        return value.strip().upper()
    return default


def configure_logging(level: str = "INFO") -> None:
    """Install a single console handler on the package root logger."""
    root = logging.getLogger("depthtune")
    root.setLevel(normalize_log_level(level))
    if not any(getattr(handler, "_depthtune_console", False) for handler in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, DATE_FORMAT))
        handler._depthtune_console = True  # type: ignore[attr-defined]
        root.addHandler(handler)


class LoggingAnalyticsSink:
    """Default analytics sink: one INFO line per record, fields in `extra`."""

    def __init__(self, logger_name: str = ANALYTICS_LOGGER_NAME) -> None:
        self._logger = logging.getLogger(logger_name)

    def log(self, event: str, fields: Mapping[str, Any]) -> None:
        payload = dict(fields)
        rendered = " ".join(f"{key}={payload[key]!r}" for key in sorted(payload))
        self._logger.info("%s %s", event, rendered, extra={"analytics_event": event, "analytics": payload})


@dataclass(slots=True)
class RecordingAnalyticsSink:
    """Keeps records in memory; handy for tests and the CLI summary."""

    records: List[Tuple[str, Dict[str, Any]]] = field(default_factory=list)

    def log(self, event: str, fields: Mapping[str, Any]) -> None:
        self.records.append((event, dict(fields)))

    def events(self, name: str) -> List[Dict[str, Any]]:
        return [fields for event, fields in self.records if event == name]
