"""Enumeration of the popular investment parameter grid.

The grid is the cross product of four tiers (initial amount, monthly
contribution, annual return, horizon) minus a few unrealistic corners. Each
combination carries a popularity ``priority`` in ``[0, MAX_PRIORITY]`` and its
detected goal.
"""
from __future__ import annotations

import heapq
import math
from typing import Callable, Iterator, List, Optional, Sequence

from pydantic import ValidationError

from .config import GridSettings
from .logger import get_logger
from .scenarios import detect_investment_goal
from .schema import ParameterCombination

log = get_logger("enumerator")

REALISTIC_FILTER_RATIO = 0.85
MAX_PRIORITY = 10

POPULAR_AMOUNTS = {1000, 5000, 10000, 25000, 50000}
POPULAR_MONTHLY = {100, 250, 500, 1000}
POPULAR_YEARS = {10, 15, 20, 25, 30}
REALISTIC_RETURNS = {6, 7, 8}


def estimate_count(
    amount_tiers: int,
    monthly_tiers: int,
    return_tiers: int,
    years_tiers: int,
    goal_multiplier: int = 1,
) -> int:
    """Approximate number of scenarios a grid produces.

    About 85% of raw combinations survive the realism filter:
    ``floor(a * m * r * y * 0.85) * goal_multiplier``.

    >>> estimate_count(3, 3, 3, 3, 2)
    136
    """
    tiers = (amount_tiers, monthly_tiers, return_tiers, years_tiers)
    if any(t <= 0 for t in tiers) or goal_multiplier <= 0:
        return 0
    base = math.floor(amount_tiers * monthly_tiers * return_tiers * years_tiers * REALISTIC_FILTER_RATIO)
    return base * goal_multiplier


def calculate_priority(combo: ParameterCombination) -> int:
    """Popularity score; higher means more likely to be searched."""
    score = 0
    if combo.initial_amount in POPULAR_AMOUNTS:
        score += 3
    elif combo.initial_amount <= 100000:
        score += 1

    if combo.monthly_contribution in POPULAR_MONTHLY:
        score += 3
    elif combo.monthly_contribution <= 2000:
        score += 1

    if combo.time_horizon in POPULAR_YEARS:
        score += 2
    elif combo.time_horizon >= 5:
        score += 1

    if combo.annual_return in REALISTIC_RETURNS:
        score += 2
    elif 4 <= combo.annual_return <= 12:
        score += 1
    return score


def _priority_of(combo: ParameterCombination) -> int:
    return combo.priority or 0


def is_realistic(initial: float, monthly: float, rate: float, years: int) -> bool:
    if initial == 100000 and monthly >= 5000:
        return False
    if years <= 5 and initial >= 50000:
        return False
    if rate >= 12 and years >= 25:
        return False
    return True


class ParameterSpaceEnumerator:
    """Lazy, restartable iteration over the grid.

    Iterating the enumerator twice yields the same sequence; nothing is
    materialized until consumed.
    """

    def __init__(
        self,
        amounts: Optional[Sequence[float]] = None,
        monthly: Optional[Sequence[float]] = None,
        returns: Optional[Sequence[float]] = None,
        years: Optional[Sequence[int]] = None,
        goal_detector: Callable[[ParameterCombination], str] = detect_investment_goal,
    ):
        defaults = GridSettings()
        self.amounts = list(defaults.amounts if amounts is None else amounts)
        self.monthly = list(defaults.monthly if monthly is None else monthly)
        self.returns = list(defaults.returns if returns is None else returns)
        self.years = list(defaults.years if years is None else years)
        self.goal_detector = goal_detector

    @classmethod
    def from_settings(cls, grid: GridSettings, **kwargs) -> "ParameterSpaceEnumerator":
        return cls(grid.amounts, grid.monthly, grid.returns, grid.years, **kwargs)

    def __iter__(self) -> Iterator[ParameterCombination]:
        return self.iter_combinations()

    def iter_combinations(self, min_priority: int = 0) -> Iterator[ParameterCombination]:
        for initial in self.amounts:
            for monthly in self.monthly:
                for years in self.years:
                    for rate in self.returns:
                        if not is_realistic(initial, monthly, rate, years):
                            continue
                        try:
                            combo = ParameterCombination(
                                initial_amount=initial,
                                monthly_contribution=monthly,
                                annual_return=rate,
                                time_horizon=years,
                            )
                        except ValidationError as e:
                            log.warning(
                                "skipping grid point (%s, %s, %s, %s): %d invalid field(s)",
                                initial, monthly, rate, years, e.error_count(),
                            )
                            continue
                        priority = calculate_priority(combo)
                        if priority < min_priority:
                            continue
                        combo.priority = priority
                        combo.goal = self.goal_detector(combo)
                        yield combo

    def top(self, limit: Optional[int] = None, min_priority: int = 0) -> List[ParameterCombination]:
        """Most popular combinations first; ties keep grid order.

        With a ``limit`` only that many combinations are held at once.
        """
        source = self.iter_combinations(min_priority)
        if limit is None:
            return sorted(source, key=_priority_of, reverse=True)
        if limit <= 0:
            return []
        return heapq.nlargest(limit, source, key=_priority_of)

    def estimate(self, goal_multiplier: int = 1) -> int:
        return estimate_count(
            len(self.amounts), len(self.monthly), len(self.returns), len(self.years), goal_multiplier
        )


__all__ = [
    "ParameterSpaceEnumerator",
    "estimate_count",
    "calculate_priority",
    "is_realistic",
    "MAX_PRIORITY",
]
