"""Guided pay-day flow.

:class:`PayDayOrchestrator` walks one pay day through four phases::

    AMOUNT_ENTRY -> STRATEGY_REVIEW -> EXECUTION -> SUCCESS

The flow is linear.  ``cancel()`` leaves it from any phase before success.
Only :meth:`PayDayOrchestrator.execute` writes to the goal store; the review
phase is a sandbox that recomputes previews from in-memory state.

Each goal is committed on its own.  A failed commit is recorded and the
remaining goals are still committed; earlier commits are never rolled back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

from . import config
from .allocation import AllocationNormalizer
from .baseline import BaselineDetector, normalize_to_monthly
from .models import Goal, GoalUpdate, coerce_amount, goals_by_id, normalize_frequency
from .simulator import SimulationResult, simulate_horizons
from .store import GoalStore, GoalStoreError
from .time_saved import HorizonImpact, TimeSavedReport, boost_days_closer, compute_time_saved, top_horizons

logger = logging.getLogger(__name__)


class Phase(Enum):
    AMOUNT_ENTRY = 'amount_entry'
    STRATEGY_REVIEW = 'strategy_review'
    EXECUTION = 'execution'
    SUCCESS = 'success'
    CANCELLED = 'cancelled'


@dataclass(frozen=True)
class AllocationSplit:
    """Base allocation plus the one-off boost layered on top of it."""

    goal_id: str
    base: float
    boost: float = 0.0

    @property
    def total(self) -> float:
        return self.base + self.boost


@dataclass(frozen=True)
class CommitResult:
    goal_id: str
    amount: float
    success: bool
    message: str = ''


@dataclass(frozen=True)
class ReviewPreview:
    splits: Dict[str, AllocationSplit]
    reserve: float
    is_over_allocated: bool
    projections: Dict[str, SimulationResult] = field(default_factory=dict)
    time_saved: TimeSavedReport = field(default_factory=TimeSavedReport)
    boost_days: Dict[str, int] = field(default_factory=dict)


class PayDayOrchestrator:
    """State machine for applying one pay day to the goal store.

    Args:
        store: Source of goals and history, and target of the commits.
        expected_amount: Optional pre-filled inflow for the amount entry.
        frequency: Pay frequency used for the review projections.
        today: Reference date for projections (defaults to today).
    """

    def __init__(
        self,
        store: GoalStore,
        expected_amount: Any = None,
        frequency: Optional[str] = None,
        today: Optional[date] = None,
    ):
        self.store = store
        self.frequency = normalize_frequency(frequency)
        self.today = today
        self._expected_amount = max(0.0, coerce_amount(expected_amount))
        self.detector = BaselineDetector()
        self._start()

    def _start(self) -> None:
        self.phase = Phase.AMOUNT_ENTRY
        self.external_inflow = self._expected_amount
        self.goals: Dict[str, Goal] = goals_by_id(self.store.list_goals())
        self.allocations: Dict[str, float] = {}
        self.boosts: Dict[str, float] = {}
        self.commit_results: List[CommitResult] = []
        self.top_horizons: List[HorizonImpact] = []
        self.error: Optional[str] = None
        self.detector.reset()

    def _fail(self, message: str) -> bool:
        self.error = message
        logger.warning("%s (phase %s)", message, self.phase.value)
        return False

    def _transition(self, phase: Phase) -> None:
        logger.info("Pay day: %s -> %s", self.phase.value, phase.value)
        self.phase = phase
        self.error = None

    # ------------------------------------------------------------------
    # Amount entry
    # ------------------------------------------------------------------

    def enter_amount(self, value: Any) -> bool:
        if self.phase is not Phase.AMOUNT_ENTRY:
            return self._fail('Amount can only be changed before review')
        self.external_inflow = max(0.0, coerce_amount(value))
        return True

    def proceed_to_review(self) -> bool:
        if self.phase is not Phase.AMOUNT_ENTRY:
            return self._fail('Review can only start from amount entry')
        if self.external_inflow <= 0:
            return self._fail('Please enter a valid amount')
        self.allocations = {
            goal.id: coerce_amount(goal.cash_flow_amount)
            for goal in self.goals.values()
            if goal.has_cash_flow
        }
        self._transition(Phase.STRATEGY_REVIEW)
        return True

    # ------------------------------------------------------------------
    # Strategy review (sandbox)
    # ------------------------------------------------------------------

    def toggle_goal(self, goal_id: str, amount: Any = None) -> bool:
        """Add ``goal_id`` to the allocation, or remove it when already present."""
        if self.phase is not Phase.STRATEGY_REVIEW:
            return self._fail('Goals can only be toggled during review')
        goal = self.goals.get(goal_id)
        if goal is None:
            return self._fail(f'Unknown goal {goal_id}')
        if goal_id in self.allocations:
            del self.allocations[goal_id]
            self.boosts.pop(goal_id, None)
        elif amount is None:
            self.allocations[goal_id] = coerce_amount(goal.cash_flow_amount)
        else:
            self.allocations[goal_id] = max(0.0, coerce_amount(amount))
        return True

    def set_allocation(self, goal_id: str, amount: Any) -> bool:
        """Set the temporary amount for one goal; zero or less removes it."""
        if self.phase is not Phase.STRATEGY_REVIEW:
            return self._fail('Allocations can only be edited during review')
        if goal_id not in self.goals:
            return self._fail(f'Unknown goal {goal_id}')
        value = coerce_amount(amount)
        if value > 0:
            self.allocations[goal_id] = value
        else:
            self.allocations.pop(goal_id, None)
            self.boosts.pop(goal_id, None)
        return True

    def set_boost(self, goal_id: str, fraction: Any) -> bool:
        """Set the boost slider (0..1) for an allocated goal."""
        if self.phase is not Phase.STRATEGY_REVIEW:
            return self._fail('Boosts can only be set during review')
        if goal_id not in self.allocations:
            return self._fail(f'Goal {goal_id} is not allocated')
        if not self.goals[goal_id].is_horizon:
            return self._fail('Boosts apply to horizons only')
        value = min(max(coerce_amount(fraction), 0.0), 1.0)
        if value > 0:
            self.boosts[goal_id] = value
        else:
            self.boosts.pop(goal_id, None)
        return True

    @property
    def autopilot_reserve(self) -> float:
        """Money already promised to cash-flow goals in this allocation."""
        return sum(
            coerce_amount(goal.cash_flow_amount)
            for goal_id, goal in self.goals.items()
            if goal_id in self.allocations and goal.has_cash_flow
        )

    def _split(self, goal: Goal, amount: float) -> AllocationSplit:
        slider = self.boosts.get(goal.id, 0.0)
        cash_flow = coerce_amount(goal.cash_flow_amount)
        if goal.is_horizon and goal.has_cash_flow and amount > cash_flow:
            return AllocationSplit(goal.id, cash_flow, (amount - cash_flow) + cash_flow * slider)
        if goal.is_horizon and slider > 0:
            return AllocationSplit(goal.id, amount, amount * slider)
        return AllocationSplit(goal.id, amount)

    def split_boosts(self) -> Dict[str, AllocationSplit]:
        """Split each temporary amount into its base and boost parts."""
        splits: Dict[str, AllocationSplit] = {}
        for goal_id, amount in self.allocations.items():
            goal = self.goals.get(goal_id)
            if goal is None:
                continue
            splits[goal_id] = self._split(goal, amount)
        return splits

    def total_boost(self) -> float:
        """Slider boosts applied to the temporary amounts."""
        return sum(
            self.allocations.get(goal_id, 0.0) * fraction
            for goal_id, fraction in self.boosts.items()
        )

    def reserve(self) -> float:
        """Inflow minus the temporary amounts and their slider boosts.

        Negative when over-allocated.
        """
        return self.external_inflow - sum(self.allocations.values()) - self.total_boost()

    def committed_total(self) -> float:
        """Money ``execute`` would write, base plus boost for every goal."""
        return sum(split.total for split in self.split_boosts().values())

    @property
    def is_over_allocated(self) -> bool:
        return self.reserve() < 0

    def baseline(self) -> Dict[str, float]:
        if self.detector.is_computed:
            return self.detector.detect([])
        horizons = [goal for goal in self.goals.values() if goal.is_horizon]
        history = self.store.history(goal.id for goal in horizons)
        return self.detector.detect(horizons, history, self.frequency)

    def preview(self) -> ReviewPreview:
        """What-if view of the current allocation.  Never writes to the store."""
        splits = self.split_boosts()
        horizons = {goal_id: split.total for goal_id, split in splits.items() if self.goals[goal_id].is_horizon}
        committed = sum(horizons.values())

        normalizer = AllocationNormalizer(self.frequency)
        normalizer.load_amounts(horizons)
        projections = simulate_horizons(
            committed,
            normalizer.percentages,
            normalizer.frequencies,
            self.goals.values(),
            self.today,
        )
        monthly = {goal_id: normalize_to_monthly(amount, self.frequency) for goal_id, amount in horizons.items()}
        time_saved = compute_time_saved(
            [self.goals[goal_id] for goal_id in horizons],
            self.baseline(),
            monthly,
        )
        boost_days = {
            goal_id: boost_days_closer(self.goals[goal_id], split.base, split.boost)
            for goal_id, split in splits.items()
            if split.boost > 0
        }
        reserve = self.reserve()
        logger.debug("Previewed %d allocations, reserve %.2f", len(splits), reserve)
        return ReviewPreview(
            splits=splits,
            reserve=reserve,
            is_over_allocated=reserve < 0,
            projections=projections,
            time_saved=time_saved,
            boost_days=boost_days,
        )

    def proceed_to_execution(self) -> bool:
        if self.phase is not Phase.STRATEGY_REVIEW:
            return self._fail('Execution can only start from review')
        if not self.allocations:
            return self._fail('Please select at least one goal to allocate')
        if self.is_over_allocated:
            logger.warning("Proceeding with over-allocation, reserve %.2f", self.reserve())
        self._transition(Phase.EXECUTION)
        return True

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _commit(self, goal_id: str, amount: float) -> CommitResult:
        update = GoalUpdate(cash_flow_enabled=True, cash_flow_amount=amount)
        try:
            applied = self.store.update_goal(goal_id, update)
        except GoalStoreError as exc:
            logger.warning("Commit for %s failed: %s", goal_id, exc)
            return CommitResult(goal_id, amount, False, str(exc))
        if not applied:
            logger.warning("Commit for %s was rejected by the store", goal_id)
            return CommitResult(goal_id, amount, False, 'Update rejected')
        logger.info("Committed %.2f to %s", amount, goal_id)
        return CommitResult(goal_id, amount, True)

    def execute(self) -> List[CommitResult]:
        """Commit every allocation, one goal at a time, then move to success."""
        if self.phase is not Phase.EXECUTION:
            self._fail('Nothing to execute outside the execution phase')
            return []
        splits = self.split_boosts()
        snapshot = list(self.goals.values())
        self.commit_results = [self._commit(goal_id, split.total) for goal_id, split in splits.items()]

        stuffed = {result.goal_id: result.amount for result in self.commit_results if result.success}
        self.top_horizons = top_horizons(snapshot, stuffed, config.TOP_HORIZONS)
        self.goals = goals_by_id(self.store.list_goals())

        failed = self.failed_commits
        self._transition(Phase.SUCCESS)
        if failed:
            self.error = f'{len(failed)} of {len(self.commit_results)} goal updates failed'
            logger.warning(self.error)
        return list(self.commit_results)

    @property
    def failed_commits(self) -> List[CommitResult]:
        return [result for result in self.commit_results if not result.success]

    # ------------------------------------------------------------------
    # Exit
    # ------------------------------------------------------------------

    def cancel(self) -> bool:
        if self.phase in (Phase.SUCCESS, Phase.CANCELLED):
            return False
        self._transition(Phase.CANCELLED)
        return True

    def reset(self) -> None:
        """Start over at amount entry with a fresh goal snapshot."""
        self._start()
        logger.info("Pay day reset")
