"""
Configuration loading for the checklist.

Settings live in args/checklist.yaml. Any key missing from the file falls
back to the defaults below, so a partial file only overrides what it names.

Usage:
    from checklist.config import load_config

    config = load_config()
    config["daily_reset"]["hour"]  # 3
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import yaml

from . import CONFIG_PATH
from .logging_config import get_logger


logger = get_logger(__name__)

DEFAULT_CONFIG: dict[str, Any] = {
    "daily_reset": {
        "hour": 3,
        "delta": -1,
        # "once": one delta per delivered reset, "each": one per missed boundary
        "missed_days_policy": "once",
    },
    "counters": {
        "initial_days_remaining": 7,
    },
    "roll": {
        "base_cycles": 10,
        "extra_cycles": 3,
    },
    "runner": {
        "poll_interval_seconds": 30,
        "max_dispatch_passes": 100,
        "pid_file": ".tmp/checklist.pid",
        "status_file": ".tmp/checklist_status.json",
    },
    "tasks": [],
}

MISSED_DAYS_POLICIES = ("once", "each")


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration from YAML file, merged over the defaults."""
    config_path = path or CONFIG_PATH

    if not config_path.exists():
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        with open(config_path) as f:
            loaded = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not read {config_path}, using defaults: {e}")
        return copy.deepcopy(DEFAULT_CONFIG)

    if not isinstance(loaded, dict):
        return copy.deepcopy(DEFAULT_CONFIG)

    config = _merge(DEFAULT_CONFIG, loaded)

    policy = config["daily_reset"].get("missed_days_policy")
    if policy not in MISSED_DAYS_POLICIES:
        logger.warning(f"Unknown missed_days_policy '{policy}', falling back to 'once'")
        config["daily_reset"]["missed_days_policy"] = "once"

    hour = config["daily_reset"].get("hour")
    if isinstance(hour, bool) or not isinstance(hour, int) or not 0 <= hour <= 23:
        default_hour = DEFAULT_CONFIG["daily_reset"]["hour"]
        logger.warning(f"Invalid daily_reset hour {hour!r}, falling back to {default_hour}")
        config["daily_reset"]["hour"] = default_hour

    return config


__all__ = ["DEFAULT_CONFIG", "MISSED_DAYS_POLICIES", "load_config"]
