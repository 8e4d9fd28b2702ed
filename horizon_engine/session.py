"""Interactive planning session.

A session spans one "plan my horizons" flow.  It owns the cached baseline
and the allocation state, and turns them into an immutable
:class:`SessionSnapshot` whenever :meth:`PlanningSession.recompute` is called.
Typed contribution amounts go through a :class:`~horizon_engine.debounce.Debouncer`
so a burst of keystrokes triggers one recomputation.

After the first recompute the session listens to the goal store and
recomputes on every change until :meth:`PlanningSession.reset`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .allocation import AllocationNormalizer
from .baseline import BaselineDetector, apply_velocity, normalize_to_monthly
from .debounce import Debouncer
from .models import Goal, coerce_amount, normalize_frequency
from .simulator import SimulationResult, simulate_horizons
from .store import GoalStore
from .time_saved import TimeSavedReport, compute_time_saved

logger = logging.getLogger(__name__)

SnapshotListener = Callable[['SessionSnapshot'], None]


def _frozen(mapping: Mapping) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class SessionSnapshot:
    total_contribution: float
    selected: Tuple[str, ...]
    percentages: Mapping[str, float]
    frequencies: Mapping[str, str]
    amounts: Mapping[str, float]
    monthly_amounts: Mapping[str, float]
    baseline: Mapping[str, float]
    projections: Mapping[str, SimulationResult]
    time_saved: TimeSavedReport = field(default_factory=TimeSavedReport)

    @property
    def off_track(self) -> List[str]:
        return [goal_id for goal_id, result in self.projections.items() if not result.on_track]


class PlanningSession:
    """Baseline, allocations and projections for one planning flow."""

    def __init__(
        self,
        store: GoalStore,
        default_frequency: Optional[str] = None,
        *,
        preserve_on_add: bool = False,
        today: Optional[date] = None,
        debounce_delay: Optional[float] = None,
    ):
        self.store = store
        self.default_frequency = normalize_frequency(default_frequency)
        self.today = today
        self.total_contribution = 0.0
        self.detector = BaselineDetector()
        self.allocation = AllocationNormalizer(self.default_frequency, preserve_on_add=preserve_on_add)
        self._input = Debouncer(self._apply_total_text, delay=debounce_delay)
        self._listeners: List[SnapshotListener] = []
        self.last_snapshot: Optional[SessionSnapshot] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def goals(self) -> List[Goal]:
        return self.store.list_goals()

    def horizons(self) -> List[Goal]:
        return [goal for goal in self.goals() if goal.is_horizon]

    def select(self, goal_ids: Iterable[str]) -> None:
        known = {goal.id for goal in self.horizons()}
        self.allocation.initialize_equal([goal_id for goal_id in goal_ids if goal_id in known])

    def add_goal(self, goal_id: str) -> bool:
        if goal_id not in {goal.id for goal in self.horizons()}:
            return False
        return self.allocation.add(goal_id)

    def remove_goal(self, goal_id: str) -> bool:
        return self.allocation.remove(goal_id)

    def update_allocation(self, goal_id: str, percentage: Any) -> bool:
        return self.allocation.update_allocation(goal_id, percentage)

    def set_amount(self, goal_id: str, amount: Any) -> bool:
        return self.allocation.set_amount(goal_id, amount, self.total_contribution)

    def set_frequency(self, goal_id: str, frequency: str) -> bool:
        return self.allocation.set_frequency(goal_id, frequency)

    def set_total(self, amount: Any) -> None:
        self.total_contribution = max(0.0, coerce_amount(amount))

    def enter_total_text(self, text: str) -> int:
        """Queue typed input; the latest value wins once typing pauses."""
        return self._input.submit(text)

    def flush_input(self) -> bool:
        return self._input.flush()

    def _apply_total_text(self, text: Any) -> None:
        self.set_total(text)
        self.recompute()

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    def baseline(self) -> Dict[str, float]:
        """Detected monthly speeds, computed on first use and then cached."""
        if self.detector.is_computed:
            return self.detector.detect([])
        horizons = self.horizons()
        history = self.store.history(goal.id for goal in horizons)
        return self.detector.detect(horizons, history, self.default_frequency)

    def monthly_amounts(self) -> Dict[str, float]:
        amounts = self.allocation.amounts(self.total_contribution)
        return {
            goal_id: normalize_to_monthly(amount, self.allocation.frequency_for(goal_id))
            for goal_id, amount in amounts.items()
        }

    def compare_velocity(self, percent_change: float) -> TimeSavedReport:
        """Time saved if every selected goal ran at its baseline scaled by ``percent_change``."""
        baseline = self.baseline()
        speeds = apply_velocity(baseline, percent_change, self.allocation.selected)
        return compute_time_saved(self.horizons(), baseline, speeds)

    def recompute(self) -> SessionSnapshot:
        """Rebuild projections and time saved from the current inputs."""
        goals = self.goals()
        baseline = self.baseline()
        monthly = self.monthly_amounts()
        projections = simulate_horizons(
            self.total_contribution,
            self.allocation.percentages,
            self.allocation.frequencies,
            goals,
            self.today,
        )
        selected_goals = [goal for goal in goals if self.allocation.is_selected(goal.id)]
        snapshot = SessionSnapshot(
            total_contribution=self.total_contribution,
            selected=tuple(self.allocation.selected),
            percentages=_frozen(self.allocation.percentages),
            frequencies=_frozen(self.allocation.frequencies),
            amounts=_frozen(self.allocation.amounts(self.total_contribution)),
            monthly_amounts=_frozen(monthly),
            baseline=_frozen(baseline),
            projections=_frozen(projections),
            time_saved=compute_time_saved(selected_goals, baseline, monthly),
        )
        logger.debug(
            "Recomputed %d projections for total %.2f", len(projections), self.total_contribution
        )
        self.last_snapshot = snapshot
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self._on_store_change)
        for listener in list(self._listeners):
            listener(snapshot)
        return snapshot

    def _on_store_change(self, goals: List[Goal]) -> None:
        if self.last_snapshot is not None:
            logger.debug("Goal store changed, recomputing %d goals", len(goals))
            self.recompute()

    def subscribe(self, listener: SnapshotListener) -> None:
        self._listeners.append(listener)

    def reset(self) -> None:
        """End the flow: forget the baseline, allocations, total and pending input."""
        self._input.cancel()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.detector.reset()
        self.allocation.clear()
        self.total_contribution = 0.0
        self.last_snapshot = None
        logger.info("Planning session reset")
