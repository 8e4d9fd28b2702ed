"""Top-level package for the horizon engine.

The engine plans savings "horizons": goals with a target amount.  The
primary modules are:

* ``baseline`` - detect how fast each goal was already growing
* ``allocation`` - split a contribution across goals as percentages
* ``simulator`` - project reach dates for an allocation
* ``time_saved`` - compare a strategy against the baseline
* ``analytics`` - classify a transaction window into strategy stats
* ``session`` / ``pay_day`` - the interactive planning and pay-day flows

Everything is computed in memory from snapshots supplied by a
:class:`~horizon_engine.store.GoalStore`; the only write is
``update_goal`` during pay-day execution.
"""

from .allocation import AllocationNormalizer
from .analytics import AnalyticsPeriod, StrategyAnalytics, StrategyStats, analyze, analyze_period
from .baseline import BaselineDetector, apply_velocity, normalize_to_monthly
from .debounce import Debouncer
from .models import ContributionRecord, Goal, GoalUpdate
from .pay_day import CommitResult, PayDayOrchestrator, Phase
from .session import PlanningSession, SessionSnapshot
from .simulator import SimulationResult, project_goal, required_monthly, simulate_horizons
from .store import GoalStore, GoalStoreError, InMemoryGoalStore
from .time_saved import TimeSavedReport, compute_time_saved, top_horizons

__all__ = [
    "AllocationNormalizer",
    "AnalyticsPeriod",
    "BaselineDetector",
    "CommitResult",
    "ContributionRecord",
    "Debouncer",
    "Goal",
    "GoalStore",
    "GoalStoreError",
    "GoalUpdate",
    "InMemoryGoalStore",
    "PayDayOrchestrator",
    "Phase",
    "PlanningSession",
    "SessionSnapshot",
    "SimulationResult",
    "StrategyAnalytics",
    "StrategyStats",
    "TimeSavedReport",
    "analyze",
    "analyze_period",
    "apply_velocity",
    "compute_time_saved",
    "normalize_to_monthly",
    "project_goal",
    "required_monthly",
    "simulate_horizons",
    "top_horizons",
]
