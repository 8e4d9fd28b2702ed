#!/usr/bin/env python3
"""Project horizon reach dates and strategy stats from CSV exports."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

import pandas as pd

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from horizon_engine import config
from horizon_engine.analytics import AnalyticsPeriod, analyze_period
from horizon_engine.models import frame_to_goals, frame_to_records
from horizon_engine.session import PlanningSession
from horizon_engine.simulator import describe_time_to_target
from horizon_engine.store import InMemoryGoalStore


def _load_store(goals_path: Path, transactions_path: Optional[Path]) -> InMemoryGoalStore:
    goals = frame_to_goals(pd.read_csv(goals_path, dtype=str))
    records = []
    if transactions_path is not None:
        records = frame_to_records(pd.read_csv(transactions_path, dtype=str))
    return InMemoryGoalStore(goals, records)


def main(
    goals_path: Path,
    transactions_path: Optional[Path] = None,
    total: float = 0.0,
    frequency: Optional[str] = None,
    period: str = AnalyticsPeriod.THIS_MONTH.value,
) -> None:
    store = _load_store(goals_path, transactions_path)
    session = PlanningSession(store, frequency)
    horizons = session.horizons()
    if not horizons:
        print("No horizons found (goals need a positive Target Amount).")
        return

    session.select(goal.id for goal in horizons)
    session.set_total(total)
    snapshot = session.recompute()

    rows: List[dict] = []
    for goal in horizons:
        result = snapshot.projections[goal.id]
        rows.append({
            'Goal': goal.name,
            'Remaining': round(goal.remaining, 2),
            'Share %': round(snapshot.percentages.get(goal.id, 0.0), 2),
            'Per Period': round(result.contribution, 2),
            'Reach Date': result.reach_date.isoformat() if result.reach_date else '-',
            'In': describe_time_to_target(result.contributions_needed, result.frequency) if result.reach_date else '-',
            'On Track': 'yes' if result.on_track else 'no',
            'Baseline/mo': round(snapshot.baseline.get(goal.id, 0.0), 2),
            'Days Saved': snapshot.time_saved.per_goal.get(goal.id, 0),
        })
    print(f"Projection for {total:.2f} per {session.default_frequency} period:")
    print(pd.DataFrame(rows).to_string(index=False))
    print(f"\nTotal days saved vs. baseline: {snapshot.time_saved.total}")

    if transactions_path is not None:
        stats = analyze_period(store, AnalyticsPeriod(period))
        print(f"\nStrategy stats ({AnalyticsPeriod(period).label}):")
        for key, value in stats.as_dict().items():
            print(f"  {key}: {value:.2f}")
        print(f"\n{stats.feedback}")
        print(stats.horizon_impact_message)


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Project horizon reach dates from CSV exports.')
    parser.add_argument('goals', type=Path, help='CSV export of goals')
    parser.add_argument('--transactions', type=Path, default=None, help='CSV export of contribution records')
    parser.add_argument('--total', type=float, default=0.0, help='Total contribution per period')
    parser.add_argument('--frequency', choices=config.FREQUENCIES, default=None, help='Contribution frequency')
    parser.add_argument(
        '--period',
        choices=[p.value for p in AnalyticsPeriod if p is not AnalyticsPeriod.CUSTOM],
        default=AnalyticsPeriod.THIS_MONTH.value,
        help='Analytics window',
    )
    parser.add_argument('--log-level', default=None, help='Logging level (defaults to HORIZON_LOG_LEVEL)')
    args = parser.parse_args()
    config.configure_logging(args.log_level)
    main(args.goals, args.transactions, args.total, args.frequency, args.period)
