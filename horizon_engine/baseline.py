"""Baseline contribution speed detection.

The baseline is the monthly speed each goal was already moving at before the
user started planning.  It is detected once per planning session and kept
until the session is reset, so the "time saved" comparison always measures
against the same starting point.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from . import config
from .models import ContributionRecord, Goal, coerce_amount, normalize_frequency

logger = logging.getLogger(__name__)

SOURCE_CASH_FLOW = 'cash flow'
SOURCE_RECENT_TRANSACTION = 'recent transaction'
SOURCE_STALLED = 'stalled'

_MONTHLY_MULTIPLIERS = {
    'daily': config.AVG_DAYS_PER_MONTH,
    'weekly': config.AVG_DAYS_PER_MONTH / 7,
    'biweekly': config.AVG_DAYS_PER_MONTH / 14,
    'monthly': 1.0,
}


def normalize_to_monthly(amount: float, frequency: Optional[str]) -> float:
    """Convert a per-period ``amount`` into money per month."""
    return coerce_amount(amount) * _MONTHLY_MULTIPLIERS[normalize_frequency(frequency)]


def most_recent_external_inflow(records: Optional[Sequence[ContributionRecord]]) -> Optional[ContributionRecord]:
    """Return the newest record that brought outside money into the goal."""
    if not records:
        return None
    for record in sorted(records, key=lambda r: r.date, reverse=True):
        if record.is_external_inflow:
            return record
    return None


class BaselineDetector:
    """Detect and cache per-goal monthly speeds for one planning session."""

    def __init__(self) -> None:
        self._speeds: Optional[Dict[str, float]] = None
        self._sources: Dict[str, str] = {}

    @property
    def is_computed(self) -> bool:
        return self._speeds is not None

    @property
    def sources(self) -> Dict[str, str]:
        return dict(self._sources)

    def detect(
        self,
        goals: Iterable[Goal],
        history: Optional[Mapping[str, List[ContributionRecord]]] = None,
        default_frequency: Optional[str] = None,
    ) -> Dict[str, float]:
        """Return ``goal_id -> monthly speed``.

        The first call computes the map; later calls return the cached map
        unchanged until :meth:`reset` is called, even when ``goals`` or
        ``history`` differ.
        """
        if self._speeds is not None:
            return dict(self._speeds)

        history = history or {}
        frequency = normalize_frequency(default_frequency)
        speeds: Dict[str, float] = {}
        sources: Dict[str, str] = {}
        for goal in goals:
            if goal.has_cash_flow:
                raw = coerce_amount(goal.cash_flow_amount)
                sources[goal.id] = SOURCE_CASH_FLOW
            else:
                recent = most_recent_external_inflow(history.get(goal.id))
                if recent is not None:
                    raw = coerce_amount(recent.amount)
                    sources[goal.id] = SOURCE_RECENT_TRANSACTION
                else:
                    raw = 0.0
                    sources[goal.id] = SOURCE_STALLED
            speeds[goal.id] = normalize_to_monthly(raw, frequency)

        logger.debug("Detected baselines for %d goals (%s)", len(speeds), frequency)
        self._speeds = speeds
        self._sources = sources
        return dict(speeds)

    def reset(self) -> None:
        self._speeds = None
        self._sources = {}


def apply_velocity(
    baseline: Mapping[str, float],
    percent_change: float,
    selected: Optional[Iterable[str]] = None,
) -> Dict[str, float]:
    """Scale the baseline speed of each selected goal by ``percent_change``.

    ``percent_change`` is clamped to the configured bounds (-100..+100); 0
    reproduces the baseline.
    """
    low, high = config.VELOCITY_BOUNDS
    change = min(max(coerce_amount(percent_change), low), high)
    multiplier = 1 + change / 100
    ids = list(selected) if selected is not None else list(baseline)
    return {goal_id: coerce_amount(baseline.get(goal_id)) * multiplier for goal_id in ids}
