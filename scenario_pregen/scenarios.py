"""Scenario identity helpers: goal detection and URL slugs.

Slugs are rounding-stable: amounts and years round half-up to integers and
the return rate to one decimal, so near-identical inputs share one slug and
therefore one cache entry.
"""
from __future__ import annotations

import math
import re
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import ValidationError

from .schema import ParameterCombination

INVESTMENT_GOALS = (
    "retirement",
    "wealth",
    "emergency",
    "house",
    "education",
    "vacation",
    "starter",
    "investment",
)

SLUG_RE = re.compile(
    r"^invest-(?P<initial>\d+)-monthly-(?P<monthly>\d+)-(?P<rate>\d+(?:\.\d+)?)percent-(?P<years>\d+)years-(?P<goal>[a-z-]+)$"
)

ParamsLike = Union[ParameterCombination, Mapping[str, Any]]


def _as_combination(params: ParamsLike) -> ParameterCombination:
    if isinstance(params, ParameterCombination):
        return params
    return ParameterCombination.model_validate(dict(params))


def detect_investment_goal(params: ParamsLike) -> str:
    """Classify a combination into one of ``INVESTMENT_GOALS``. Order of checks matters."""
    p = _as_combination(params)
    initial, monthly, years = p.initial_amount, p.monthly_contribution, p.time_horizon

    if years >= 20 and monthly >= 1000:
        return "retirement"
    if years >= 15 and (initial >= 50000 or monthly >= 2000):
        return "wealth"
    if years <= 5 and initial <= 20000 and monthly <= 1000:
        return "emergency"
    if 5 <= years <= 15 and (initial >= 10000 or monthly >= 1500):
        return "house"
    if 10 <= years <= 18 and monthly >= 500:
        return "education"
    if years <= 10 and initial <= 50000 and monthly <= 1000:
        return "vacation"
    if initial <= 10000 and monthly <= 500:
        return "starter"
    return "investment"


def _round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def _format_rate(rate: float) -> str:
    # 7.0 -> "7", 7.5 -> "7.5"
    return f"{rate:g}"


def generate_scenario_slug(params: ParamsLike) -> str:
    p = _as_combination(params)
    goal = detect_investment_goal(p)
    initial = int(_round_half_up(p.initial_amount))
    monthly = int(_round_half_up(p.monthly_contribution))
    rate = _round_half_up(p.annual_return, 1)
    years = int(_round_half_up(p.time_horizon))
    return f"invest-{initial}-monthly-{monthly}-{_format_rate(rate)}percent-{years}years-{goal}"


def parse_scenario_slug(slug: str) -> Optional[Dict[str, Any]]:
    """Inverse of :func:`generate_scenario_slug`; ``None`` for anything malformed."""
    m = SLUG_RE.match(slug or "")
    if not m:
        return None
    try:
        combo = ParameterCombination(
            initial_amount=int(m.group("initial")),
            monthly_contribution=int(m.group("monthly")),
            annual_return=float(m.group("rate")),
            time_horizon=int(m.group("years")),
            goal=m.group("goal"),
        )
    except ValidationError:
        return None
    data = combo.model_dump(exclude={"priority"})
    data["slug"] = slug
    return data


def validate_scenario_params(params: Mapping[str, Any]) -> bool:
    try:
        ParameterCombination.model_validate(dict(params))
    except ValidationError:
        return False
    return True


__all__ = [
    "INVESTMENT_GOALS",
    "detect_investment_goal",
    "generate_scenario_slug",
    "parse_scenario_slug",
    "validate_scenario_params",
]
