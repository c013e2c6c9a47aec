"""Compound growth with monthly contributions."""
from __future__ import annotations

from typing import Dict


def future_value(initial_amount: float, monthly_contribution: float, annual_return: float, years: int) -> Dict[str, float]:
    """Return future value, total contributions and growth.

    ``annual_return`` is a percentage, compounded monthly; contributions are
    made at the end of each month.
    """
    months = int(years) * 12
    rate = annual_return / 100 / 12
    if rate == 0:
        value = initial_amount + monthly_contribution * months
    else:
        growth = (1 + rate) ** months
        value = initial_amount * growth + monthly_contribution * ((growth - 1) / rate)
    contributions = initial_amount + monthly_contribution * months
    return {
        "future_value": value,
        "total_contributions": contributions,
        "total_growth": value - contributions,
    }


__all__ = ["future_value"]
