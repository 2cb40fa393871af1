"""CLI configuration helpers for options persistence."""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict

from depthtune.core.analytics import normalize_log_level

_DEFAULT_LOG_LEVEL = "WARNING"
_DEFAULT_SEED = 0


def get_user_data_dir() -> Path:
    """Return the per-user data directory."""
    if os.name == "nt":
        base = os.environ.get("APPDATA")
        if base:
            return Path(base) / "DepthTune"
        return Path.home() / "DepthTune"
    return Path.home() / ".config" / "depthtune"


def get_default_config_path() -> Path:
    """Return the default per-user config path."""
    return get_user_data_dir() / "config.json"


def _normalize_seed(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return _DEFAULT_SEED
    return value


def default_config() -> Dict[str, Any]:
    return {"log_level": _DEFAULT_LOG_LEVEL, "seed": _DEFAULT_SEED}


def load_config(path: Path | None = None) -> Dict[str, Any]:
    """Load config from disk or return defaults."""
    config_path = path or get_default_config_path()
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return default_config()
    if not isinstance(raw, dict):
        return default_config()
    return {
        "log_level": normalize_log_level(raw.get("log_level"), _DEFAULT_LOG_LEVEL),
        "seed": _normalize_seed(raw.get("seed")),
    }


def save_config(config: Dict[str, Any], path: Path | None = None) -> None:
    """Persist config to disk."""
    config_path = path or get_default_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "log_level": normalize_log_level(config.get("log_level"), _DEFAULT_LOG_LEVEL),
        "seed": _normalize_seed(config.get("seed")),
    }
    config_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
