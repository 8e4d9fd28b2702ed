"""Reach-date projection for horizons.

Projections are a pure function of the current inputs and are rebuilt from
scratch on every change; nothing here is stored.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, Iterable, Mapping, Optional

from . import config
from .models import Goal, coerce_amount, coerce_date, normalize_frequency, round_half_up

STATUS_REACHED = 'reached'
STATUS_STALLED = 'stalled'
STATUS_PROJECTED = 'projected'


@dataclass(frozen=True)
class SimulationResult:
    goal_id: str
    reach_date: Optional[date]
    on_track: bool
    status: str
    contribution: float = 0.0
    remaining: float = 0.0
    frequency: str = 'monthly'
    contributions_needed: int = 0
    days_to_target: int = 0


def _today(today: Optional[date]) -> date:
    return coerce_date(today) or date.today()


def project_goal(
    goal: Goal,
    contribution: Any,
    frequency: Optional[str] = None,
    today: Optional[date] = None,
) -> SimulationResult:
    """Project when ``goal`` is reached with ``contribution`` per period."""
    now = _today(today)
    cadence = normalize_frequency(frequency)
    amount = coerce_amount(contribution)
    remaining = goal.remaining

    if remaining <= 0:
        return SimulationResult(goal.id, now, True, STATUS_REACHED, amount, remaining, cadence)
    if amount <= 0:
        return SimulationResult(goal.id, None, False, STATUS_STALLED, amount, remaining, cadence)

    contributions_needed = math.ceil(remaining / amount)
    days_to_target = contributions_needed * config.days_per_contribution(cadence)
    reach_date = now + timedelta(days=days_to_target)
    deadline = coerce_date(goal.target_date)
    on_track = deadline is None or reach_date <= deadline
    return SimulationResult(
        goal.id,
        reach_date,
        on_track,
        STATUS_PROJECTED,
        amount,
        remaining,
        cadence,
        contributions_needed,
        days_to_target,
    )


def simulate_horizons(
    total_contribution: Any,
    allocations: Mapping[str, float],
    frequencies: Mapping[str, str],
    goals: Iterable[Goal],
    today: Optional[date] = None,
) -> Dict[str, SimulationResult]:
    """Project every allocated horizon for a total contribution per period.

    Only goals present in ``allocations`` with a positive target are
    projected.  Each receives ``total * percentage / 100`` per period at its
    own frequency.
    """
    total = coerce_amount(total_contribution)
    now = _today(today)
    results: Dict[str, SimulationResult] = {}
    for goal in goals:
        if goal.id not in allocations or not goal.is_horizon:
            continue
        contribution = total * (coerce_amount(allocations.get(goal.id)) / 100)
        results[goal.id] = project_goal(goal, contribution, frequencies.get(goal.id), now)
    return results


def required_monthly(goal: Goal, target_date: Any, today: Optional[date] = None) -> float:
    """Monthly amount needed to reach the goal by ``target_date``."""
    remaining = goal.remaining
    if remaining <= 0:
        return 0.0
    deadline = coerce_date(target_date)
    if deadline is None:
        return remaining
    months = (deadline - _today(today)).days / config.AVG_DAYS_PER_MONTH
    return remaining / months if months > 0 else remaining


def _plural(count: int, unit: str) -> str:
    return f"1 {unit}" if count == 1 else f"{count} {unit}s"


def describe_time_to_target(contributions_needed: int, frequency: Optional[str] = None) -> str:
    """Render the projected wait in the most natural unit ("3 Weeks", "2 Years")."""
    total_days = max(0, int(contributions_needed)) * config.days_per_contribution(frequency)

    if total_days == 0:
        return 'Today'
    if total_days < 7:
        return _plural(total_days, 'Day')
    if total_days == 7:
        return '1 Week'
    if total_days == 14:
        return '1 Fortnight'
    if total_days in (28, 30, 31):
        return '1 Month'
    if 56 <= total_days <= 62:
        return '2 Months'
    if 84 <= total_days <= 93:
        return '3 Months'
    if total_days < 28:
        return _plural(round_half_up(total_days / 7), 'Week')
    if total_days < 90:
        months = round_half_up(total_days / 30)
        if months == 0:
            return _plural(round_half_up(total_days / 7), 'Week')
        return _plural(months, 'Month')

    months = round_half_up(total_days / 30)
    if months < 12:
        return _plural(months, 'Month')
    return _plural(round_half_up(total_days / 365), 'Year')
