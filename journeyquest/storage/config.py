"""Global app configuration (scoring constants, reward ledger connection)."""

import json
from pathlib import Path
from typing import Any

from .core import data_dir

_CONFIG_DEFAULTS: dict[str, Any] = {
    "scoring": {
        "completion_bonus": 100,
        "accuracy_bonus": 50,
        "accuracy_threshold": 80,
        "default_seconds_per_chapter": 120,
        "engagement_weights": {"discoveries": 35, "challenges": 35, "time": 30},
    },
    "reward_ledger": {
        "url": "",  # empty → local file-backed ledger
        "api_key": "",
        "timeout": 10,
    },
}


def _config_path() -> Path:
    return data_dir() / "config.json"


def get_config() -> dict[str, Any]:
    """Read config, returning defaults merged with stored values."""
    config: dict[str, Any] = json.loads(json.dumps(_CONFIG_DEFAULTS))
    path = _config_path()
    if path.is_file():
        stored = json.loads(path.read_text())
        _merge(config, stored)
    return config


def update_config(fields: dict[str, Any]) -> dict[str, Any]:
    """Merge fields into config and persist. Returns full config.

    Sections are merged key-by-key; unknown top-level keys are ignored.
    """
    config = get_config()
    _merge(config, fields)
    _config_path().write_text(json.dumps(config, indent=2))
    return config


def _merge(config: dict[str, Any], fields: dict[str, Any]) -> None:
    for section, values in fields.items():
        if section not in config or not isinstance(values, dict):
            continue
        target = config[section]
        for key, value in values.items():
            if key not in target:
                continue
            if isinstance(target[key], dict) and isinstance(value, dict):
                # engagement_weights: only known weight names
                target[key].update({k: v for k, v in value.items() if k in target[key]})
            else:
                target[key] = value
