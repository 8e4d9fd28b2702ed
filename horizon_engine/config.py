"""Configuration management for the horizon engine.

This module centralizes all configuration values including projection
constants, session defaults, and environment variable overrides.
"""

from __future__ import annotations

import logging
import os
from typing import Dict, Optional, Tuple

from .settings import get_engine_config

_ENGINE = get_engine_config()
_CONSTANTS = _ENGINE['constants']
_ANALYTICS = _ENGINE['analytics']

# Baseline normalization uses the calendar average; reach-date projection
# uses the integer-day table below. The two are kept separate on purpose.
AVG_DAYS_PER_MONTH: float = float(_CONSTANTS['avg_days_per_month'])
DAYS_PER_CONTRIBUTION: Dict[str, int] = {
    key: int(value) for key, value in _CONSTANTS['days_per_contribution'].items()
}
FREQUENCIES: Tuple[str, ...] = tuple(_CONSTANTS['frequencies'])

DEFAULT_FREQUENCY = os.getenv('HORIZON_DEFAULT_FREQUENCY', _CONSTANTS['default_frequency']).strip().lower()
if DEFAULT_FREQUENCY not in FREQUENCIES:
    DEFAULT_FREQUENCY = _CONSTANTS['default_frequency']


def _env_int(name: str, default: int) -> int:
    """Integer from the environment, ``default`` when unset or not a number."""
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return int(default)


# Debounce window for typed contribution amounts
DEBOUNCE_MS = _env_int('HORIZON_DEBOUNCE_MS', _CONSTANTS['debounce_ms'])
DEBOUNCE_SECONDS = DEBOUNCE_MS / 1000.0

TOP_HORIZONS = _env_int('HORIZON_TOP_HORIZONS', _CONSTANTS['top_horizons'])
VELOCITY_BOUNDS: Tuple[float, float] = tuple(float(v) for v in _CONSTANTS['velocity_bounds'])

HIGH_EFFICIENCY_THRESHOLD = float(_ANALYTICS['high_efficiency_threshold'])
FIXED_BILL_KEYWORDS = tuple(k.lower() for k in _ANALYTICS['fixed_bill_keywords'])
ALL_TIME_START = _ANALYTICS['all_time_start']

LOG_LEVEL = os.getenv('HORIZON_LOG_LEVEL', 'WARNING').upper()
LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'

# Tolerance used when checking that allocations sum to 100
PERCENT_TOLERANCE = 1e-6


def configure_logging(level: Optional[str] = None) -> None:
    """Install a basic stream handler for the ``horizon_engine`` loggers."""
    resolved = getattr(logging, (level or LOG_LEVEL).upper(), logging.WARNING)
    if not isinstance(resolved, int):
        resolved = logging.WARNING
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    logging.getLogger('horizon_engine').setLevel(resolved)


def days_per_contribution(frequency: Optional[str]) -> int:
    """Return the integer-day cadence for ``frequency`` (monthly when unknown)."""
    if not frequency:
        return DAYS_PER_CONTRIBUTION['monthly']
    return DAYS_PER_CONTRIBUTION.get(str(frequency).lower(), DAYS_PER_CONTRIBUTION['monthly'])


def feedback_messages() -> Dict[str, str]:
    return dict(_ANALYTICS['feedback'])


def impact_messages() -> Dict[str, str]:
    return dict(_ANALYTICS['impact_messages'])


def label(key: str) -> str:
    return _ENGINE['labels'][key]
