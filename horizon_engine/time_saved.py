"""Time saved by a strategy compared with the detected baseline."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

from . import config
from .models import Goal, coerce_amount, round_half_up


@dataclass(frozen=True)
class TimeSavedReport:
    per_goal: Dict[str, int] = field(default_factory=dict)
    total: int = 0

    def ranked(self) -> List[tuple]:
        """``(goal_id, days_saved)`` pairs, most days saved first."""
        return sorted(self.per_goal.items(), key=lambda item: item[1], reverse=True)


@dataclass(frozen=True)
class HorizonImpact:
    goal: Goal
    days_saved: int
    stuffed_amount: float


def days_at_speed(remaining: float, monthly_speed: float) -> int:
    """Whole days needed to cover ``remaining`` at ``monthly_speed``."""
    return math.ceil(remaining / monthly_speed * config.AVG_DAYS_PER_MONTH)


def compute_time_saved(
    goals: Iterable[Goal],
    baseline: Mapping[str, float],
    current_amounts: Mapping[str, float],
) -> TimeSavedReport:
    """Compare baseline speed against the strategy speed for each goal.

    Goals without a positive baseline speed, strategy speed or remaining
    amount are skipped.  A negative value means the strategy is slower.
    """
    per_goal: Dict[str, int] = {}
    for goal in goals:
        baseline_speed = coerce_amount(baseline.get(goal.id))
        new_speed = coerce_amount(current_amounts.get(goal.id))
        remaining = goal.remaining
        if baseline_speed <= 0 or new_speed <= 0 or remaining <= 0:
            continue
        per_goal[goal.id] = days_at_speed(remaining, baseline_speed) - days_at_speed(remaining, new_speed)
    return TimeSavedReport(per_goal=per_goal, total=sum(per_goal.values()))


def _days_at_velocity(remaining: float, velocity: float) -> float:
    return remaining / (velocity / config.AVG_DAYS_PER_MONTH)


def boost_days_closer(goal: Goal, stuffed: float, boost: float) -> int:
    """Days a one-off boost on top of ``stuffed`` brings the goal closer."""
    velocity = coerce_amount(goal.cash_flow_amount)
    if not goal.is_horizon or velocity <= 0:
        return 0
    base_balance = coerce_amount(goal.current_amount) + coerce_amount(stuffed)
    target = coerce_amount(goal.target_amount)
    before = max(round_half_up(_days_at_velocity(target - base_balance, velocity)), 0)
    after = max(round_half_up(_days_at_velocity(target - base_balance - coerce_amount(boost), velocity)), 0)
    return max(before - after, 0)


def top_horizons(
    goals: Iterable[Goal],
    allocations: Mapping[str, float],
    limit: Optional[int] = None,
) -> List[HorizonImpact]:
    """Horizons that moved closest to their target after a pay day."""
    count = config.TOP_HORIZONS if limit is None else limit
    impacts: List[HorizonImpact] = []
    for goal in goals:
        if goal.id not in allocations:
            continue
        velocity = coerce_amount(goal.cash_flow_amount)
        if not goal.is_horizon or goal.target_date is None or velocity <= 0:
            continue
        stuffed = coerce_amount(allocations[goal.id])
        target = coerce_amount(goal.target_amount)
        old_days = _days_at_velocity(target - coerce_amount(goal.current_amount), velocity)
        new_days = _days_at_velocity(target - coerce_amount(goal.current_amount) - stuffed, velocity)
        days_saved = round_half_up(old_days - new_days)
        if days_saved > 0:
            impacts.append(HorizonImpact(goal=goal, days_saved=days_saved, stuffed_amount=stuffed))
    impacts.sort(key=lambda impact: impact.days_saved, reverse=True)
    return impacts[:max(count, 0)]
