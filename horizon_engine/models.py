"""Goal and contribution data model.

Goals and contribution records are owned by the external goal store; the
engine only reads them.  The helpers at the bottom convert between these
dataclasses and the tabular (``pandas``) form used by analytics and the CLI.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Literal, Optional

import pandas as pd

from . import config

Impact = Literal['external', 'internal']
Direction = Literal['inflow', 'outflow', 'move']
Frequency = Literal['daily', 'weekly', 'biweekly', 'monthly']
EndpointType = Literal['goal', 'account', 'external']

EXTERNAL = 'external'
INTERNAL = 'internal'
INFLOW = 'inflow'
OUTFLOW = 'outflow'
MOVE = 'move'

IMPACTS = {EXTERNAL, INTERNAL}
DIRECTIONS = {INFLOW, OUTFLOW, MOVE}
ENDPOINT_TYPES = {'goal', 'account', 'external'}

RECORD_COLUMNS = [
    'id',
    'Goal ID',
    'Amount',
    'Date',
    'Impact',
    'Direction',
    'Description',
    'Source ID',
    'Source Type',
    'Destination ID',
    'Destination Type',
]


def coerce_amount(value: Any) -> float:
    """Return ``value`` as a finite float, treating anything unusable as 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        text = value.strip().replace(',', '')
        if not text:
            return 0.0
        try:
            value = float(text)
        except ValueError:
            return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def coerce_date(value: Any) -> Optional[date]:
    """Parse ``value`` into a ``date``; ``None`` when it cannot be parsed."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = pd.to_datetime(value, errors='coerce')
    if pd.isna(parsed):
        return None
    return parsed.date()


def normalize_frequency(value: Any) -> str:
    text = str(value or '').strip().lower()
    return text if text in config.FREQUENCIES else config.DEFAULT_FREQUENCY


def _normalize_choice(value: Any, choices: set) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip().lower()
    return text if text in choices else None


@dataclass
class Goal:
    id: str
    name: str = ''
    current_amount: float = 0.0
    target_amount: Optional[float] = None
    target_date: Optional[date] = None
    cash_flow_enabled: bool = False
    cash_flow_amount: Optional[float] = None
    group_id: Optional[str] = None
    is_debt: bool = False

    @property
    def is_horizon(self) -> bool:
        return self.target_amount is not None and self.target_amount > 0

    @property
    def remaining(self) -> float:
        """Amount still needed to reach the target (may be negative)."""
        return coerce_amount(self.target_amount) - coerce_amount(self.current_amount)

    @property
    def has_cash_flow(self) -> bool:
        return bool(self.cash_flow_enabled) and coerce_amount(self.cash_flow_amount) > 0


@dataclass
class ContributionRecord:
    goal_id: str
    amount: float
    date: datetime
    impact: Optional[Impact] = None
    direction: Optional[Direction] = None
    description: str = ''
    source_id: Optional[str] = None
    source_type: Optional[EndpointType] = None
    destination_id: Optional[str] = None
    destination_type: Optional[EndpointType] = None
    id: Optional[str] = None

    @property
    def is_classified(self) -> bool:
        """Legacy records carry neither impact nor direction."""
        return self.impact is not None and self.direction is not None

    @property
    def is_external_inflow(self) -> bool:
        return self.impact == EXTERNAL and self.direction == INFLOW

    @property
    def action_label(self) -> str:
        text = self.description or ''
        if self.impact == EXTERNAL and self.direction == INFLOW:
            return 'Pay Day Deposit' if config.label('pay_day_deposit') in text else 'Income'
        if self.impact == EXTERNAL and self.direction == OUTFLOW:
            return 'Autopilot Payment' if config.label('autopilot') in text else 'Spent'
        if self.impact == INTERNAL and self.direction == MOVE:
            if config.label('cash_flow') in text:
                return 'Cash Flow'
            if config.label('autopilot') in text:
                return 'Autopilot Transfer'
            return 'Transfer'
        return 'Legacy'


@dataclass(frozen=True)
class GoalUpdate:
    """Fields the engine is allowed to change on a goal."""

    cash_flow_enabled: Optional[bool] = None
    cash_flow_amount: Optional[float] = None

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        if self.cash_flow_enabled is not None:
            payload['cash_flow_enabled'] = self.cash_flow_enabled
        if self.cash_flow_amount is not None:
            payload['cash_flow_amount'] = self.cash_flow_amount
        return payload


def horizon_ids(goals: Iterable[Goal]) -> set:
    return {goal.id for goal in goals if goal.is_horizon}


def goals_by_id(goals: Iterable[Goal]) -> Dict[str, Goal]:
    return {goal.id: goal for goal in goals}


def records_to_frame(records: Iterable[ContributionRecord]) -> pd.DataFrame:
    """Flatten contribution records into a DataFrame with ``RECORD_COLUMNS``."""
    rows = [
        {
            'id': record.id,
            'Goal ID': record.goal_id,
            'Amount': record.amount,
            'Date': record.date,
            'Impact': record.impact,
            'Direction': record.direction,
            'Description': record.description,
            'Source ID': record.source_id,
            'Source Type': record.source_type,
            'Destination ID': record.destination_id,
            'Destination Type': record.destination_type,
        }
        for record in records
    ]
    if not rows:
        return pd.DataFrame(columns=RECORD_COLUMNS)
    df = pd.DataFrame(rows, columns=RECORD_COLUMNS)
    df['Amount'] = pd.to_numeric(df['Amount'], errors='coerce').fillna(0.0)
    df['Date'] = pd.to_datetime(df['Date'], errors='coerce')
    return df


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    text = str(value).strip()
    return text or None


def frame_to_records(df: pd.DataFrame) -> List[ContributionRecord]:
    """Build contribution records from a DataFrame, skipping rows without a goal."""
    if df is None or df.empty or 'Date' not in df.columns:
        return []
    working = df.copy()
    dates = pd.to_datetime(working['Date'], errors='coerce')
    rows: List[ContributionRecord] = []
    for (_, row), when in zip(working.iterrows(), dates):
        goal_id = _optional_text(row.get('Goal ID'))
        if not goal_id or pd.isna(when):
            continue
        rows.append(
            ContributionRecord(
                id=_optional_text(row.get('id')),
                goal_id=goal_id,
                amount=coerce_amount(row.get('Amount')),
                date=when.to_pydatetime(),
                impact=_normalize_choice(_optional_text(row.get('Impact')), IMPACTS),
                direction=_normalize_choice(_optional_text(row.get('Direction')), DIRECTIONS),
                description=_optional_text(row.get('Description')) or '',
                source_id=_optional_text(row.get('Source ID')),
                source_type=_normalize_choice(_optional_text(row.get('Source Type')), ENDPOINT_TYPES),
                destination_id=_optional_text(row.get('Destination ID')),
                destination_type=_normalize_choice(_optional_text(row.get('Destination Type')), ENDPOINT_TYPES),
            )
        )
    return rows


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {'1', 'true', 'yes', 'y'}
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return False
    return bool(value)


def frame_to_goals(df: pd.DataFrame) -> List[Goal]:
    """Build goals from a DataFrame export of the goal store."""
    goals: List[Goal] = []
    if df is None or df.empty:
        return goals
    for row in df.to_dict('records'):
        goal_id = _optional_text(row.get('id'))
        if not goal_id:
            continue
        target = coerce_amount(row.get('Target Amount'))
        cash_flow = coerce_amount(row.get('Cash Flow Amount'))
        goals.append(
            Goal(
                id=goal_id,
                name=_optional_text(row.get('Name')) or goal_id,
                current_amount=max(0.0, coerce_amount(row.get('Current Amount'))),
                target_amount=target if target > 0 else None,
                target_date=coerce_date(_optional_text(row.get('Target Date'))),
                cash_flow_enabled=_as_bool(row.get('Cash Flow Enabled')),
                cash_flow_amount=cash_flow if cash_flow > 0 else None,
                group_id=_optional_text(row.get('Group ID')),
                is_debt=_as_bool(row.get('Is Debt')),
            )
        )
    return goals


def history_by_goal(records: Iterable[ContributionRecord]) -> Dict[str, List[ContributionRecord]]:
    grouped: Dict[str, List[ContributionRecord]] = {}
    for record in records:
        grouped.setdefault(record.goal_id, []).append(record)
    return grouped


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))
