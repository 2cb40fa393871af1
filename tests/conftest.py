"""Shared test plumbing."""
from __future__ import annotations

import logging
from typing import Iterator

import pytest


@pytest.fixture(autouse=True)
def _restore_depthtune_logger() -> Iterator[None]:
    """Undo global logger changes (e.g. from the CLI's configure_logging) between tests."""
    logger = logging.getLogger("depthtune")
    level, handlers = logger.level, list(logger.handlers)
    yield
    logger.setLevel(level)
    logger.handlers[:] = handlers
