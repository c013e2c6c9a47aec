import types

import pytest
from pydantic import ValidationError

from scenario_pregen.enumerator import (
    MAX_PRIORITY,
    ParameterSpaceEnumerator,
    calculate_priority,
    estimate_count,
)
from scenario_pregen.schema import ParameterCombination


def test_estimate_count_examples():
    assert estimate_count(2, 2, 2, 2, 1) == 13
    assert estimate_count(3, 3, 3, 3, 2) == 136
    assert estimate_count(0, 3, 3, 3, 2) == 0
    assert estimate_count(6, 6, 6, 6, 3) == 1101 * 3


def test_enumerator_estimate_uses_tier_sizes():
    e = ParameterSpaceEnumerator(amounts=[1, 2], monthly=[1, 2], returns=[4, 6], years=[5, 10])
    assert e.estimate() == 13
    assert e.estimate(goal_multiplier=3) == 39


def test_default_grid_skips_unrealistic_corners():
    combos = list(ParameterSpaceEnumerator())
    assert len(combos) == 1124
    for c in combos:
        assert not (c.initial_amount == 100000 and c.monthly_contribution >= 5000)
        assert not (c.time_horizon <= 5 and c.initial_amount >= 50000)
        assert not (c.annual_return >= 12 and c.time_horizon >= 25)


def test_iteration_is_lazy_and_restartable():
    e = ParameterSpaceEnumerator()
    it = e.iter_combinations()
    assert isinstance(it, types.GeneratorType)
    first = next(it)
    assert first.initial_amount == 1000
    assert [c.model_dump() for c in e] == [c.model_dump() for c in e]


def test_every_combination_has_priority_and_goal():
    for c in ParameterSpaceEnumerator():
        assert 0 <= c.priority <= MAX_PRIORITY
        assert c.goal


def test_min_priority_filters_before_yield():
    e = ParameterSpaceEnumerator()
    everything = list(e)
    popular = list(e.iter_combinations(min_priority=9))
    assert popular
    assert len(popular) < len(everything)
    assert all(c.priority >= 9 for c in popular)


def test_top_returns_most_popular_first():
    e = ParameterSpaceEnumerator()
    ranked = e.top()
    priorities = [c.priority for c in ranked]
    assert priorities == sorted(priorities, reverse=True)
    top5 = e.top(5)
    assert len(top5) == 5
    assert [c.model_dump() for c in top5] == [c.model_dump() for c in ranked[:5]]
    assert e.top(0) == []
    assert all(c.priority >= 8 for c in e.top(None, min_priority=8))


def test_priority_scoring():
    popular = ParameterCombination(initial_amount=10000, monthly_contribution=500, annual_return=7, time_horizon=20)
    assert calculate_priority(popular) == MAX_PRIORITY
    odd = ParameterCombination(initial_amount=200000, monthly_contribution=3000, annual_return=20, time_horizon=3)
    assert calculate_priority(odd) == 0


def test_single_point_grid():
    e = ParameterSpaceEnumerator(amounts=[1000], monthly=[100], returns=[7], years=[20])
    (combo,) = list(e)
    assert combo.priority == 10
    assert combo.goal == "starter"


@pytest.mark.parametrize(
    "field,value",
    [("initial_amount", -1), ("monthly_contribution", 200_000), ("annual_return", 51), ("time_horizon", 0)],
)
def test_parameter_combination_range_checks(field, value):
    data = {"initial_amount": 1000, "monthly_contribution": 100, "annual_return": 7, "time_horizon": 10}
    data[field] = value
    with pytest.raises(ValidationError):
        ParameterCombination(**data)
