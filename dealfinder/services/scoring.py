"""Deterministic deal scoring from price-drop, time-on-market and keyword signals."""

from __future__ import annotations

import math
from typing import Iterable, List, Optional

from ..models.analysis import Score, ScoredProperty
from ..models.property import Property
from ..utils.coerce import finite_or_zero, round_half_up, to_float

# ---------------------------------------------------------------------------
# Scoring configuration
# ---------------------------------------------------------------------------

PRICE_DROP_MAX = 45.0
PRICE_DROP_POINTS_PER_PERCENT = 5.0
DOM_MAX = 30.0
DOM_REFERENCE_DAYS = 180.0
DROP_FREQUENCY_MAX = 15.0
DROP_FREQUENCY_REFERENCE = 4.0
KEYWORD_POINTS = 10.0
INCREASE_PENALTY_CAP = 5.0
NO_KEYWORD_SENTINEL = "No result"


# ---------------------------------------------------------------------------
# Signal components
# ---------------------------------------------------------------------------


def price_drop_points(drop_percent: float) -> float:
    """Only a negative change (price fell) earns points, capped at a 9% drop."""

    if drop_percent >= 0:
        return 0.0
    return min(PRICE_DROP_MAX, abs(drop_percent) * PRICE_DROP_POINTS_PER_PERCENT)


def dom_points(days_on_market: float) -> float:
    return _bounded(days_on_market / DOM_REFERENCE_DAYS * DOM_MAX, DOM_MAX)


def drop_frequency_points(drop_count: float) -> float:
    return _bounded(drop_count / DROP_FREQUENCY_REFERENCE * DROP_FREQUENCY_MAX, DROP_FREQUENCY_MAX)


def keyword_points(keyword: Optional[str]) -> float:
    if keyword and keyword.strip() and keyword != NO_KEYWORD_SENTINEL:
        return KEYWORD_POINTS
    return 0.0


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


class DealScorer:
    def score(self, prop: Property) -> Score:
        drop_percent = _drop_percent(prop)

        price_drop = price_drop_points(drop_percent)
        dom = dom_points(finite_or_zero(prop.days_on_market))
        frequency = drop_frequency_points(finite_or_zero(prop.drop_frequency_count))
        keywords = keyword_points(prop.keyword_used)

        total = price_drop + dom + frequency + keywords
        if drop_percent > 0:
            total = min(INCREASE_PENALTY_CAP, total)

        return Score(
            price_drop=round_half_up(price_drop),
            dom=round_half_up(dom),
            drop_frequency=round_half_up(frequency),
            keywords=round_half_up(keywords),
            global_score=max(0, min(100, round_half_up(total))),
        )

    def score_all(self, properties: Iterable[Property]) -> List[ScoredProperty]:
        scored: List[ScoredProperty] = []
        for prop in properties:
            scored.append(
                ScoredProperty.model_validate(
                    {
                        **prop.model_dump(),
                        "scores": self.score(prop),
                        "total_drop_percent": _drop_percent(prop),
                        "total_drop_amount": _drop_amount(prop),
                    }
                )
            )
        return scored


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _drop_percent(prop: Property) -> float:
    return finite_or_zero(prop.drop_percent)


def _drop_amount(prop: Property) -> float:
    price = to_float(prop.price)
    initial = to_float(prop.initial_price)
    if not price or not initial:
        return 0.0
    return price - initial


def _bounded(value: float, cap: float) -> float:
    if not math.isfinite(value):
        return 0.0
    return max(0.0, min(cap, value))
