"""Scenario content generation from parameter-driven templates."""
from __future__ import annotations
import hashlib
from typing import Any, Dict, Optional

import orjson
from jinja2 import Environment, StrictUndefined
from pydantic import BaseModel

from .finance import future_value
from .schema import ParameterCombination

DEFAULT_LOCALE = "en"

LOCALE_CURRENCY = {"en": "USD", "es": "EUR", "pl": "PLN"}

# Annual inflation per currency, percent
INFLATION_RATES = {"USD": 2.5, "EUR": 2.0, "PLN": 3.5}

SECTION_NAMES = (
    "investment_overview",
    "growth_projection",
    "investment_insights",
    "strategy_analysis",
    "comparative_scenarios",
    "community_insights",
    "optimization_tips",
    "market_context",
)

TEMPLATES: Dict[str, Dict[str, str]] = {
    "en": {
        "investment_overview": "Investing {{ initial|money }} with {{ monthly|money }} added every month at {{ rate }}% for {{ years }} years is a typical {{ goal }} plan.",
        "growth_projection": "After {{ years }} years the portfolio is projected to reach {{ fv|money }}, of which {{ growth|money }} is investment growth.",
        "investment_insights": "Contributions total {{ contributions|money }}; growth makes up {{ growth_share }}% of the final value.",
        "strategy_analysis": "{% if years >= 20 %}A long horizon lets compounding do most of the work.{% else %}A shorter horizon makes steady contributions matter most.{% endif %}",
        "comparative_scenarios": "Raising the monthly amount to {{ (monthly * 1.5)|money }} would lift the result to about {{ fv_more|money }}.",
        "community_insights": "Investors planning for {{ goal }} commonly choose horizons between {{ years - 5 if years > 5 else 1 }} and {{ years + 5 }} years.",
        "optimization_tips": "Review the plan yearly and raise contributions with income; each extra 1% of return adds roughly {{ (fv_plus_one - fv)|money }}.",
        "market_context": "With inflation near {{ inflation }}%, the real annual return is about {{ real_rate }}%.",
    },
    "es": {
        "investment_overview": "Invertir {{ initial|money }} con {{ monthly|money }} al mes al {{ rate }}% durante {{ years }} años es un plan típico de {{ goal }}.",
        "growth_projection": "Tras {{ years }} años la cartera podría alcanzar {{ fv|money }}, de los cuales {{ growth|money }} son rendimientos.",
        "investment_insights": "Las aportaciones suman {{ contributions|money }}; el crecimiento supone el {{ growth_share }}% del valor final.",
        "strategy_analysis": "{% if years >= 20 %}Un horizonte largo deja que el interés compuesto haga la mayor parte del trabajo.{% else %}Con un horizonte corto, las aportaciones constantes son lo más importante.{% endif %}",
        "comparative_scenarios": "Subir la aportación mensual a {{ (monthly * 1.5)|money }} elevaría el resultado a unos {{ fv_more|money }}.",
        "community_insights": "Quienes ahorran para {{ goal }} suelen elegir horizontes de {{ years - 5 if years > 5 else 1 }} a {{ years + 5 }} años.",
        "optimization_tips": "Revisa el plan cada año; cada 1% adicional de rentabilidad añade aproximadamente {{ (fv_plus_one - fv)|money }}.",
        "market_context": "Con una inflación cercana al {{ inflation }}%, la rentabilidad real anual ronda el {{ real_rate }}%.",
    },
    "pl": {
        "investment_overview": "Inwestycja {{ initial|money }} z miesięczną wpłatą {{ monthly|money }} przy {{ rate }}% przez {{ years }} lat to typowy plan: {{ goal }}.",
        "growth_projection": "Po {{ years }} latach portfel może osiągnąć {{ fv|money }}, w tym {{ growth|money }} zysku.",
        "investment_insights": "Wpłaty wynoszą łącznie {{ contributions|money }}; zysk stanowi {{ growth_share }}% wartości końcowej.",
        "strategy_analysis": "{% if years >= 20 %}Długi horyzont pozwala procentowi składanemu wykonać większość pracy.{% else %}Przy krótszym horyzoncie najważniejsze są regularne wpłaty.{% endif %}",
        "comparative_scenarios": "Zwiększenie wpłaty do {{ (monthly * 1.5)|money }} podniosłoby wynik do około {{ fv_more|money }}.",
        "community_insights": "Osoby oszczędzające na cel {{ goal }} wybierają zwykle horyzont od {{ years - 5 if years > 5 else 1 }} do {{ years + 5 }} lat.",
        "optimization_tips": "Przeglądaj plan co roku; każdy dodatkowy 1% zwrotu to około {{ (fv_plus_one - fv)|money }} więcej.",
        "market_context": "Przy inflacji około {{ inflation }}% realna roczna stopa zwrotu wynosi około {{ real_rate }}%.",
    },
}

GOAL_NAMES = {
    "en": {},
    "es": {
        "retirement": "jubilación", "wealth": "patrimonio", "emergency": "fondo de emergencia",
        "house": "vivienda", "education": "educación", "vacation": "vacaciones",
        "starter": "primera inversión", "investment": "inversión",
    },
    "pl": {
        "retirement": "emerytura", "wealth": "budowanie majątku", "emergency": "fundusz awaryjny",
        "house": "mieszkanie", "education": "edukacja", "vacation": "wakacje",
        "starter": "pierwsza inwestycja", "investment": "inwestycja",
    },
}


class MarketData(BaseModel):
    inflation: float
    currency: str
    real_return: float


class ContentSections(BaseModel):
    investment_overview: str
    growth_projection: str
    investment_insights: str
    strategy_analysis: str
    comparative_scenarios: str
    community_insights: str
    optimization_tips: str
    market_context: str
    market_data: Optional[MarketData] = None


def _money_filter(currency: str):
    def money(value: float) -> str:
        return f"{value:,.0f} {currency}"
    return money


def _environment(currency: str) -> Environment:
    env = Environment(undefined=StrictUndefined, autoescape=False)
    env.filters["money"] = _money_filter(currency)
    return env


def content_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]


def generate_content(params: ParameterCombination, locale: str = DEFAULT_LOCALE) -> ContentSections:
    """Render every content section for ``params`` in ``locale``.

    Unknown locales fall back to English templates.
    """
    templates = TEMPLATES.get(locale) or TEMPLATES[DEFAULT_LOCALE]
    currency = LOCALE_CURRENCY.get(locale, "USD")
    inflation = INFLATION_RATES.get(currency, 2.5)
    goal_key = params.goal or "investment"
    goal = GOAL_NAMES.get(locale, {}).get(goal_key, goal_key)

    fv = future_value(params.initial_amount, params.monthly_contribution, params.annual_return, params.time_horizon)
    fv_more = future_value(params.initial_amount, params.monthly_contribution * 1.5, params.annual_return, params.time_horizon)
    fv_plus_one = future_value(params.initial_amount, params.monthly_contribution, params.annual_return + 1, params.time_horizon)
    final = fv["future_value"]
    context: Dict[str, Any] = {
        "initial": params.initial_amount,
        "monthly": params.monthly_contribution,
        "rate": f"{params.annual_return:g}",
        "years": params.time_horizon,
        "goal": goal,
        "fv": final,
        "contributions": fv["total_contributions"],
        "growth": fv["total_growth"],
        "growth_share": round(100 * fv["total_growth"] / final) if final else 0,
        "fv_more": fv_more["future_value"],
        "fv_plus_one": fv_plus_one["future_value"],
        "inflation": f"{inflation:g}",
        "real_rate": f"{params.annual_return - inflation:.1f}",
    }
    env = _environment(currency)
    sections = {name: env.from_string(templates[name]).render(**context).strip() for name in SECTION_NAMES}
    return ContentSections(
        **sections,
        market_data=MarketData(
            inflation=inflation, currency=currency, real_return=round(params.annual_return - inflation, 2)
        ),
    )


def serialize_content(content: Any) -> str:
    """Text form of generated content as stored in the cache."""
    if isinstance(content, str):
        return content
    if isinstance(content, BaseModel):
        return content.model_dump_json()
    return orjson.dumps(content, default=str).decode()


__all__ = [
    "ContentSections",
    "MarketData",
    "generate_content",
    "serialize_content",
    "content_hash",
    "SECTION_NAMES",
]
