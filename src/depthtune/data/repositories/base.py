"""Base repository implementation for JSON definition data."""
from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Dict, Generic, List, TypeVar

from depthtune.data import paths
from depthtune.data.errors import DataValidationError
from depthtune.data.json_loader import load_json

T = TypeVar("T")

logger = logging.getLogger(__name__)


class RepositoryBase(Generic[T]):
    """Common caching and loading behavior for repositories."""

    def __init__(self, filename: str, base_path: Path | str | None = None) -> None:
        self._filename = filename
        self._base_path = Path(base_path) if base_path is not None else None
        self._definitions: Dict[str, T] | None = None

    def _get_file_path(self) -> Path:
        definitions_dir = paths.get_definitions_path(self._base_path)
        return definitions_dir / self._filename

    def _load_raw(self) -> dict[str, object]:
        file_path = self._get_file_path()
        raw = load_json(file_path)
        if not isinstance(raw, dict):
            raise DataValidationError(f"Expected top-level object in {file_path}")
        return raw

    def _build(self, raw: dict[str, object]) -> Dict[str, T]:
        """Convert a raw dict into typed definitions."""
        raise NotImplementedError

    def _ensure_loaded(self) -> None:
        if self._definitions is None:
            raw = self._load_raw()
            self._definitions = self._build(raw)
            logger.debug("%s: %d definitions loaded", self._filename, len(self._definitions))

    def get(self, def_id: str) -> T:
        """Return a definition by id."""
        self._ensure_loaded()
        assert self._definitions is not None
        try:
            return self._definitions[def_id]
        except KeyError as exc:
            raise KeyError(def_id) from exc

    def find(self, def_id: str) -> T | None:
        """Return a definition by id, or None when it does not exist."""
        self._ensure_loaded()
        assert self._definitions is not None
        return self._definitions.get(def_id)

    def all(self) -> list[T]:
        """Return all definitions sorted deterministically by id."""
        self._ensure_loaded()
        assert self._definitions is not None
        return [self._definitions[key] for key in sorted(self._definitions.keys())]

    @staticmethod
    def _require_mapping(value: object, context: str) -> dict[str, object]:
        if not isinstance(value, dict):
            raise DataValidationError(f"{context} must be an object/dict.")
        return value

    @staticmethod
    def _require_str(value: object, context: str) -> str:
        if not isinstance(value, str) or not value:
            raise DataValidationError(f"{context} must be a non-empty string.")
        return value

    @staticmethod
    def _require_bool(value: object, context: str) -> bool:
        if not isinstance(value, bool):
            raise DataValidationError(f"{context} must be a boolean.")
        return value

    @staticmethod
    def _require_int(value: object, context: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise DataValidationError(f"{context} must be an integer.")
        return value

    @staticmethod
    def _require_number(value: object, context: str) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise DataValidationError(f"{context} must be a number.")
        if not math.isfinite(value):
            raise DataValidationError(f"{context} must be finite.")
        return float(value)

    @classmethod
    def _require_non_negative(cls, value: object, context: str) -> float:
        number = cls._require_number(value, context)
        if number < 0:
            raise DataValidationError(f"{context} must be >= 0.")
        return number

    @staticmethod
    def _require_str_list(value: object, context: str) -> List[str]:
        if not isinstance(value, list):
            raise DataValidationError(f"{context} must be a list.")
        result: List[str] = []
        for item in value:
            if not isinstance(item, str):
                raise DataValidationError(f"{context} entries must be strings.")
            result.append(item)
        return result

    @staticmethod
    def _assert_required(payload: dict[str, object], required: set[str], context: str) -> None:
        missing = required - payload.keys()
        if missing:
            raise DataValidationError(f"{context} missing fields: {sorted(missing)}")
