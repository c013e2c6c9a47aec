import json

import pytest

from scenario_pregen.finance import future_value
from scenario_pregen.generator import SECTION_NAMES, ContentSections, generate_content, serialize_content
from scenario_pregen.schema import ParameterCombination


def make_combo(**overrides):
    data = dict(initial_amount=10000, monthly_contribution=500, annual_return=7, time_horizon=20, goal="retirement")
    data.update(overrides)
    return ParameterCombination(**data)


def test_future_value_without_interest():
    r = future_value(1000, 100, 0, 1)
    assert r["future_value"] == 2200
    assert r["total_contributions"] == 2200
    assert r["total_growth"] == 0


def test_future_value_compounds_monthly():
    r = future_value(1000, 0, 12, 1)
    assert r["future_value"] == pytest.approx(1000 * 1.01 ** 12)
    assert r["total_growth"] > 0


def test_english_content_has_all_sections():
    content = generate_content(make_combo(), "en")
    for name in SECTION_NAMES:
        assert getattr(content, name)
    assert "10,000 USD" in content.investment_overview
    assert "retirement" in content.investment_overview
    assert "long horizon" in content.strategy_analysis
    assert content.market_data.currency == "USD"


def test_localized_content():
    es = generate_content(make_combo(), "es")
    assert "años" in es.investment_overview
    assert "jubilación" in es.investment_overview
    assert es.market_data.currency == "EUR"
    pl = generate_content(make_combo(time_horizon=5), "pl")
    assert "lat" in pl.investment_overview
    assert pl.market_data.currency == "PLN"


def test_unknown_locale_falls_back_to_english():
    content = generate_content(make_combo(), "de")
    assert "years" in content.investment_overview


def test_serialize_content():
    assert serialize_content("plain") == "plain"
    model_text = serialize_content(generate_content(make_combo(), "en"))
    assert ContentSections.model_validate_json(model_text).investment_overview
    assert json.loads(serialize_content({"a": [1, 2]})) == {"a": [1, 2]}
