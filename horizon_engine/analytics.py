"""Strategy analytics over a window of contribution records.

Every record is classified by whether it crosses the accounting boundary
(external) or only moves money between goals (internal), and by which way the
money flows.  The totals feed the summary cards: income vs. spending,
efficiency, how much went towards horizons, and how much of the total
horizon gap that closed.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, time
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from . import config
from .models import (
    DIRECTIONS,
    EXTERNAL,
    IMPACTS,
    INFLOW,
    INTERNAL,
    MOVE,
    OUTFLOW,
    ContributionRecord,
    Goal,
    horizon_ids,
    records_to_frame,
)
from .store import GoalStore

logger = logging.getLogger(__name__)

FLOW_EXTERNAL_INFLOW = 'External Inflow'
FLOW_EXTERNAL_OUTFLOW = 'External Outflow'
FLOW_HORIZON_MOVE = 'Horizon Move'
FLOW_LIQUID_MOVE = 'Liquid Move'
FLOW_OTHER = 'Other'
FLOW_UNCLASSIFIED = 'Unclassified'

SPENDING_FIXED = 'Fixed Bill'
SPENDING_DISCRETIONARY = 'Discretionary'

FIXED_BILL_PATTERN = '|'.join(re.escape(keyword) for keyword in sorted(config.FIXED_BILL_KEYWORDS))


@dataclass(frozen=True)
class StrategyStats:
    """Summary of one analytics window.  Derived, never stored."""

    external_inflow: float = 0.0
    external_outflow: float = 0.0
    net_impact: float = 0.0
    efficiency: float = 0.0
    horizon_velocity: float = 0.0
    total_horizon_gap: float = 0.0
    horizon_impact: float = 0.0
    fixed_bills: float = 0.0
    discretionary: float = 0.0
    liquid_cash: float = 0.0

    @property
    def feedback_level(self) -> str:
        if self.external_inflow == 0 and self.external_outflow == 0:
            return 'ready'
        if self.external_inflow == 0 and self.external_outflow > 0:
            return 'friction'
        if self.efficiency > config.HIGH_EFFICIENCY_THRESHOLD:
            return 'high_efficiency'
        if self.efficiency > 0:
            return 'stable'
        return 'caution'

    @property
    def feedback(self) -> str:
        return config.feedback_messages()[self.feedback_level]

    @property
    def horizon_impact_message(self) -> str:
        messages = config.impact_messages()
        if self.total_horizon_gap == 0 and self.horizon_velocity == 0:
            return messages['no_horizons']
        if self.total_horizon_gap <= 0 and self.horizon_velocity > 0:
            return messages['all_reached']
        if self.horizon_velocity <= 0 and self.total_horizon_gap > 0:
            return messages['no_progress']
        return messages['progress'].format(impact=self.horizon_impact)

    @property
    def is_deficit(self) -> bool:
        return self.external_outflow > self.external_inflow

    def income_allocation(self) -> Dict[str, float]:
        """Share of inflow that was spent, sent to horizons, or kept liquid.

        Each share lies in ``[0, 1]`` and together they never exceed 1.
        """
        if self.external_inflow <= 0:
            return {'spent': 0.0, 'horizons': 0.0, 'liquid': 0.0}
        spent = float(np.clip(self.external_outflow / self.external_inflow, 0.0, 1.0))
        horizons = float(np.clip(self.horizon_velocity / self.external_inflow, 0.0, 1.0 - spent))
        liquid = float(np.clip(self.liquid_cash / self.external_inflow, 0.0, max(0.0, 1.0 - spent - horizons)))
        return {'spent': spent, 'horizons': horizons, 'liquid': liquid}

    def as_dict(self) -> Dict[str, float]:
        return {
            'external_inflow': self.external_inflow,
            'external_outflow': self.external_outflow,
            'net_impact': self.net_impact,
            'efficiency': self.efficiency,
            'horizon_velocity': self.horizon_velocity,
            'total_horizon_gap': self.total_horizon_gap,
            'horizon_impact': self.horizon_impact,
            'fixed_bills': self.fixed_bills,
            'discretionary': self.discretionary,
            'liquid_cash': self.liquid_cash,
        }


class StrategyAnalytics:
    """Classify a transaction window against the current goal set."""

    def __init__(
        self,
        transactions: Union[pd.DataFrame, Iterable[ContributionRecord], None],
        goals: Sequence[Goal],
    ):
        if isinstance(transactions, pd.DataFrame):
            self.data = transactions.copy()
        else:
            self.data = records_to_frame(transactions or [])
        self.goals = list(goals)
        self._horizon_ids = horizon_ids(self.goals)
        self._debt_ids = {goal.id for goal in self.goals if goal.is_debt}
        self._prepare_data()

    def _prepare_data(self) -> None:
        """Attach ``Flow Category`` and ``Spending Kind`` columns."""
        for column in ('Impact', 'Direction', 'Description', 'Goal ID', 'Destination ID'):
            if column not in self.data.columns:
                self.data[column] = None
        if 'Amount' not in self.data.columns:
            self.data['Amount'] = 0.0
        self.data['Amount'] = pd.to_numeric(self.data['Amount'], errors='coerce').fillna(0.0)

        impact = self.data['Impact'].fillna('').astype(str).str.strip().str.lower()
        direction = self.data['Direction'].fillna('').astype(str).str.strip().str.lower()
        description = self.data['Description'].fillna('').astype(str).str.lower()
        goal_ids = self.data['Goal ID'].fillna('').astype(str)
        destinations = self.data['Destination ID'].fillna('').astype(str)

        classified = impact.isin(IMPACTS) & direction.isin(DIRECTIONS)
        external_inflow = classified & (impact == EXTERNAL) & (direction == INFLOW)
        external_outflow = classified & (impact == EXTERNAL) & (direction == OUTFLOW)
        internal_move = classified & (impact == INTERNAL) & (direction == MOVE)
        to_horizon = internal_move & destinations.isin(self._horizon_ids)

        fixed_signal = goal_ids.isin(self._debt_ids)
        if FIXED_BILL_PATTERN:
            fixed_signal |= description.str.contains(FIXED_BILL_PATTERN, na=False, regex=True)

        self.data['Flow Category'] = np.select(
            [
                ~classified,
                external_inflow,
                external_outflow,
                to_horizon,
                internal_move,
            ],
            [
                FLOW_UNCLASSIFIED,
                FLOW_EXTERNAL_INFLOW,
                FLOW_EXTERNAL_OUTFLOW,
                FLOW_HORIZON_MOVE,
                FLOW_LIQUID_MOVE,
            ],
            default=FLOW_OTHER,
        )
        self.data['Spending Kind'] = np.where(
            external_outflow,
            np.where(fixed_signal, SPENDING_FIXED, SPENDING_DISCRETIONARY),
            '',
        )

        skipped = int((~classified).sum())
        if skipped:
            logger.debug("Skipping %d legacy records without impact/direction", skipped)

    def _total(self, column: str, value: str) -> float:
        if self.data.empty:
            return 0.0
        return float(self.data.loc[self.data[column] == value, 'Amount'].sum())

    def total_horizon_gap(self) -> float:
        return float(sum(max(goal.remaining, 0.0) for goal in self.goals if goal.is_horizon))

    def analyze(self) -> StrategyStats:
        external_inflow = self._total('Flow Category', FLOW_EXTERNAL_INFLOW)
        external_outflow = self._total('Flow Category', FLOW_EXTERNAL_OUTFLOW)
        horizon_velocity = self._total('Flow Category', FLOW_HORIZON_MOVE)
        liquid_cash = self._total('Flow Category', FLOW_LIQUID_MOVE)
        fixed_bills = self._total('Spending Kind', SPENDING_FIXED)
        discretionary = self._total('Spending Kind', SPENDING_DISCRETIONARY)

        net_impact = external_inflow - external_outflow
        efficiency = net_impact / external_inflow if external_inflow > 0 else 0.0
        gap = self.total_horizon_gap()
        if gap > 0:
            horizon_impact = horizon_velocity / gap * 100
        else:
            horizon_impact = 100.0 if horizon_velocity > 0 else 0.0

        return StrategyStats(
            external_inflow=external_inflow,
            external_outflow=external_outflow,
            net_impact=net_impact,
            efficiency=efficiency,
            horizon_velocity=horizon_velocity,
            total_horizon_gap=gap,
            horizon_impact=horizon_impact,
            fixed_bills=fixed_bills,
            discretionary=discretionary,
            liquid_cash=liquid_cash,
        )

    def flow_breakdown(self) -> pd.DataFrame:
        """Totals and counts per flow category, largest first."""
        if self.data.empty:
            return pd.DataFrame(columns=['Flow Category', 'Total', 'Count'])
        grouped = self.data.groupby('Flow Category')['Amount'].agg(['sum', 'count']).reset_index()
        grouped.columns = ['Flow Category', 'Total', 'Count']
        return grouped.sort_values('Total', ascending=False).reset_index(drop=True)

    def horizon_contributions(self) -> pd.DataFrame:
        """Internal moves into each horizon during the window."""
        moves = self.data[self.data['Flow Category'] == FLOW_HORIZON_MOVE]
        if moves.empty:
            return pd.DataFrame(columns=['Destination ID', 'Amount'])
        totals = moves.groupby('Destination ID')['Amount'].sum().reset_index()
        return totals.sort_values('Amount', ascending=False).reset_index(drop=True)


def analyze(
    transactions: Union[pd.DataFrame, Iterable[ContributionRecord], None],
    goals: Sequence[Goal],
) -> StrategyStats:
    """Compute :class:`StrategyStats` for a transaction window."""
    return StrategyAnalytics(transactions, goals).analyze()


class AnalyticsPeriod(Enum):
    THIS_MONTH = 'this_month'
    LAST_3_MONTHS = 'last_3_months'
    LAST_6_MONTHS = 'last_6_months'
    THIS_YEAR = 'this_year'
    ALL_TIME = 'all_time'
    CUSTOM = 'custom'

    @property
    def label(self) -> str:
        return {
            'this_month': 'This Month',
            'last_3_months': 'Last 3 Months',
            'last_6_months': 'Last 6 Months',
            'this_year': 'This Year',
            'all_time': 'All Time',
            'custom': 'Custom',
        }[self.value]

    def date_range(self, reference: Optional[datetime] = None) -> Tuple[datetime, datetime]:
        """Inclusive ``(start, end)`` window ending at ``reference``."""
        now = pd.Timestamp(reference or datetime.now())
        if self is AnalyticsPeriod.THIS_MONTH:
            start = now.normalize().replace(day=1)
            end = datetime.combine((start + pd.offsets.MonthEnd(0)).date(), time.max)
            return start.to_pydatetime(), end
        if self is AnalyticsPeriod.LAST_3_MONTHS:
            return (now.normalize() - pd.DateOffset(months=3)).to_pydatetime(), now.to_pydatetime()
        if self is AnalyticsPeriod.LAST_6_MONTHS:
            return (now.normalize() - pd.DateOffset(months=6)).to_pydatetime(), now.to_pydatetime()
        if self is AnalyticsPeriod.THIS_YEAR:
            return now.normalize().replace(month=1, day=1).to_pydatetime(), now.to_pydatetime()
        if self is AnalyticsPeriod.ALL_TIME:
            return pd.Timestamp(config.ALL_TIME_START).to_pydatetime(), now.to_pydatetime()
        return now.to_pydatetime(), now.to_pydatetime()


def analyze_period(
    store: GoalStore,
    period: AnalyticsPeriod,
    reference: Optional[datetime] = None,
    goals: Optional[List[Goal]] = None,
) -> StrategyStats:
    """Fetch the period's transactions from ``store`` and analyze them."""
    start, end = period.date_range(reference)
    transactions = store.transactions_in_range(start, end)
    current_goals = goals if goals is not None else store.list_goals()
    logger.debug("Analyzing %s (%s to %s)", period.value, start, end)
    return analyze(transactions, current_goals)
