"""Loader for the JSON settings shipped with the engine."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

SETTINGS_DIR = Path(__file__).parent

# Sections every engine settings file must define
ENGINE_SECTIONS = ('constants', 'analytics', 'labels')


@lru_cache(maxsize=None)
def _read_settings(path: str) -> Dict[str, Any]:
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def load_config(config_name: str) -> Dict[str, Any]:
    """Load ``<config_name>.json`` from the settings directory.

    Files are parsed once and cached; call :func:`clear_cache` after editing
    one at runtime.

    Raises:
        FileNotFoundError: If the settings file doesn't exist
        json.JSONDecodeError: If the settings file is invalid JSON

    Example:
        >>> load_config('engine')['constants']['avg_days_per_month']
        30.44
    """
    path = SETTINGS_DIR / f"{config_name}.json"
    if not path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")
    return _read_settings(str(path))


def clear_cache() -> None:
    _read_settings.cache_clear()


def get_engine_config() -> Dict[str, Any]:
    """Engine settings: projection constants, analytics thresholds and labels.

    Raises:
        KeyError: If a required section is missing from ``engine.json``
    """
    settings = load_config('engine')
    missing = [section for section in ENGINE_SECTIONS if section not in settings]
    if missing:
        raise KeyError(f"engine.json is missing sections: {', '.join(missing)}")
    return settings


def get_config_value(config_name: str, *keys: str, default: Any = None) -> Any:
    """Walk ``keys`` into a settings file, returning ``default`` when any is absent.

    Example:
        >>> get_config_value('engine', 'constants', 'top_horizons')
        3
    """
    try:
        value = load_config(config_name)
        for key in keys:
            value = value[key]
        return value
    except (KeyError, FileNotFoundError):
        return default
