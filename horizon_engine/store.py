"""Goal/transaction store port and an in-memory adapter.

The engine never persists anything itself.  It reads snapshots through
:class:`GoalStore` and issues exactly one kind of write, ``update_goal``,
when a pay day is executed.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from .models import ContributionRecord, Goal, GoalUpdate, history_by_goal

logger = logging.getLogger(__name__)

ChangeListener = Callable[[List[Goal]], None]


class GoalStoreError(Exception):
    """Raised by a store when a goal update cannot be applied."""


class GoalStore(ABC):
    @abstractmethod
    def list_goals(self) -> List[Goal]:
        """Synchronous snapshot of every goal."""

    @abstractmethod
    def transactions_for_goal(self, goal_id: str) -> List[ContributionRecord]:
        pass

    @abstractmethod
    def transactions_in_range(self, start: datetime, end: datetime) -> List[ContributionRecord]:
        """Records dated within ``[start, end]``."""

    @abstractmethod
    def update_goal(self, goal_id: str, update: GoalUpdate) -> bool:
        """Apply ``update``; return ``False`` or raise :class:`GoalStoreError` on failure."""

    @abstractmethod
    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Call ``listener`` with a fresh goal snapshot after every change.

        Returns a callable that removes the listener.
        """

    def history(self, goal_ids: Iterable[str]) -> Dict[str, List[ContributionRecord]]:
        return {goal_id: self.transactions_for_goal(goal_id) for goal_id in goal_ids}


class InMemoryGoalStore(GoalStore):
    """Dictionary-backed store used by the CLI and the test suite."""

    def __init__(
        self,
        goals: Optional[Iterable[Goal]] = None,
        transactions: Optional[Iterable[ContributionRecord]] = None,
    ):
        self._goals: Dict[str, Goal] = {goal.id: goal for goal in goals or []}
        self._transactions: List[ContributionRecord] = list(transactions or [])
        self._listeners: List[ChangeListener] = []

    def list_goals(self) -> List[Goal]:
        return list(self._goals.values())

    def get_goal(self, goal_id: str) -> Optional[Goal]:
        return self._goals.get(goal_id)

    def transactions_for_goal(self, goal_id: str) -> List[ContributionRecord]:
        grouped = history_by_goal(self._transactions)
        return sorted(grouped.get(goal_id, []), key=lambda record: record.date, reverse=True)

    def transactions_in_range(self, start: datetime, end: datetime) -> List[ContributionRecord]:
        return [record for record in self._transactions if start <= record.date <= end]

    def add_transaction(self, record: ContributionRecord) -> None:
        self._transactions.append(record)

    def update_goal(self, goal_id: str, update: GoalUpdate) -> bool:
        goal = self._goals.get(goal_id)
        if goal is None:
            logger.warning("Cannot update unknown goal %s", goal_id)
            return False
        self._goals[goal_id] = replace(goal, **update.as_dict())
        logger.info("Updated goal %s: %s", goal_id, update.as_dict())
        self._notify()
        return True

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        snapshot = self.list_goals()
        for listener in list(self._listeners):
            listener(snapshot)
