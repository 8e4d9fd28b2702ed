"""Percentage allocation across the selected goals.

``AllocationNormalizer`` owns the ``goal_id -> percentage`` map for one
planning session.  Every mutating operation leaves the percentages of a
non-empty selection summing to 100.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from . import config
from .models import coerce_amount, normalize_frequency

logger = logging.getLogger(__name__)


def _clamp_percent(value: float) -> float:
    return max(0.0, min(100.0, value))


class AllocationNormalizer:
    """Percentage and frequency state for the selected goals.

    Args:
        default_frequency: Frequency assigned to goals without one.
        preserve_on_add: When ``True`` adding a goal keeps the existing
            shares (the new goal joins at 0%) instead of resetting every
            goal to an equal share.
    """

    def __init__(self, default_frequency: Optional[str] = None, *, preserve_on_add: bool = False) -> None:
        self.default_frequency = normalize_frequency(default_frequency)
        self.preserve_on_add = preserve_on_add
        self.percentages: Dict[str, float] = {}
        self.frequencies: Dict[str, str] = {}
        self._selected: List[str] = []

    @property
    def selected(self) -> List[str]:
        return list(self._selected)

    def is_selected(self, goal_id: str) -> bool:
        return goal_id in self._selected

    def total(self) -> float:
        return sum(self.percentages.get(goal_id, 0.0) for goal_id in self._selected)

    def initialize_equal(self, selected: Optional[Iterable[str]] = None) -> None:
        """Give every selected goal an equal share when nothing is allocated yet."""
        if selected is not None:
            new_ids = [goal_id for goal_id in dict.fromkeys(selected) if goal_id not in self._selected]
            if self.percentages:
                for goal_id in new_ids:
                    self.add(goal_id)
                return
            self._selected.extend(new_ids)
        if self.percentages or not self._selected:
            return
        self._reset_equal()

    def _reset_equal(self) -> None:
        share = 100.0 / len(self._selected)
        self.percentages = {goal_id: share for goal_id in self._selected}
        for goal_id in self._selected:
            self.frequencies.setdefault(goal_id, self.default_frequency)

    def update_allocation(self, goal_id: str, new_percentage: Any) -> bool:
        """Set one goal's share and spread the difference over the others."""
        if goal_id not in self._selected:
            return False
        new_pct = _clamp_percent(coerce_amount(new_percentage))
        old_pct = self.percentages.get(goal_id, 0.0)
        delta = new_pct - old_pct
        self.percentages[goal_id] = new_pct

        others = [other for other in self._selected if other != goal_id]
        if others:
            adjustment = -delta / len(others)
            for other in others:
                self.percentages[other] = _clamp_percent(self.percentages.get(other, 0.0) + adjustment)

        self.normalize()
        logger.debug("Allocation for %s set to %.4f%%", goal_id, self.percentages[goal_id])
        return True

    def set_amount(self, goal_id: str, amount: Any, total: Any) -> bool:
        """Apply a money amount for one goal as a share of ``total``.

        Returns ``False`` without changing anything when the amount cannot be
        parsed, the total is not positive, or the amount exceeds the total.
        """
        if goal_id not in self._selected:
            return False
        total_value = coerce_amount(total)
        if isinstance(amount, str):
            try:
                amount_value = float(amount.strip().replace(',', ''))
            except ValueError:
                logger.warning("Ignoring unparsable amount %r for %s", amount, goal_id)
                return False
        else:
            amount_value = coerce_amount(amount)
        if total_value <= 0:
            return False
        if amount_value > total_value:
            logger.warning("Amount %.2f exceeds total contribution %.2f", amount_value, total_value)
            return False
        return self.update_allocation(goal_id, amount_value / total_value * 100)

    def load_amounts(self, amounts: Mapping[str, Any]) -> None:
        """Replace the selection with shares proportional to money ``amounts``."""
        self._selected = [goal_id for goal_id in amounts]
        self.percentages = {goal_id: max(0.0, coerce_amount(value)) for goal_id, value in amounts.items()}
        for goal_id in self._selected:
            self.frequencies.setdefault(goal_id, self.default_frequency)
        self.normalize()

    def normalize(self) -> None:
        """Rescale the selected shares so they sum to 100."""
        if not self._selected:
            self.percentages = {}
            return
        total = self.total()
        if total <= 0:
            self._reset_equal()
            return
        factor = 100.0 / total
        self.percentages = {
            goal_id: self.percentages.get(goal_id, 0.0) * factor for goal_id in self._selected
        }

    def add(self, goal_id: str) -> bool:
        if goal_id in self._selected:
            return False
        self._selected.append(goal_id)
        self.frequencies.setdefault(goal_id, self.default_frequency)
        if self.preserve_on_add and self.percentages:
            self.percentages[goal_id] = 0.0
            self.normalize()
        else:
            self._reset_equal()
        return True

    def remove(self, goal_id: str) -> bool:
        if goal_id not in self._selected:
            return False
        self._selected.remove(goal_id)
        self.percentages.pop(goal_id, None)
        self.frequencies.pop(goal_id, None)
        if self._selected:
            self.normalize()
        else:
            self.percentages = {}
        return True

    def set_frequency(self, goal_id: str, frequency: str) -> bool:
        if goal_id not in self._selected:
            return False
        self.frequencies[goal_id] = normalize_frequency(frequency)
        return True

    def frequency_for(self, goal_id: str) -> str:
        return self.frequencies.get(goal_id, self.default_frequency)

    def amounts(self, total_contribution: Any) -> Dict[str, float]:
        """Translate the shares into money for ``total_contribution``."""
        total = coerce_amount(total_contribution)
        return {
            goal_id: total * (self.percentages.get(goal_id, 0.0) / 100)
            for goal_id in self._selected
        }

    def is_balanced(self) -> bool:
        if not self._selected:
            return True
        return abs(self.total() - 100.0) <= config.PERCENT_TOLERANCE

    def clear(self) -> None:
        self.percentages = {}
        self.frequencies = {}
        self._selected = []
