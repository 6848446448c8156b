"""Market statistics derived from a comparable set."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional, Sequence

import numpy as np

from ..models.analysis import MarketStats, MarketTrend, RelistMarker, TrendPoint
from ..models.property import PricePoint, Property
from ..utils.coerce import as_utc, finite_or_zero, round_half_up, to_float
from ..utils.logging import get_logger

LOGGER = get_logger("services.market_stats")


def median_price(prices: Sequence[float]) -> float:
    """Middle element for odd lengths, mean of the two central elements otherwise."""

    ordered = sorted(prices)
    if not ordered:
        return 0.0
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


class MarketStatsCalculator:
    def compute_stats(self, target: Property, comparables: Sequence[Property]) -> Optional[MarketStats]:
        """Baseline prices for ``target`` from its comparables.

        Returns ``None`` when no comparable carries a positive, finite price;
        callers treat that as "insufficient data".
        """

        if not comparables:
            return None

        prices = [p for p in (to_float(c.price) for c in comparables) if p is not None and p > 0]
        if not prices:
            LOGGER.debug("market_stats_no_prices target=%s comps=%d", target.id, len(comparables))
            return None
        if len(prices) < len(comparables):
            LOGGER.debug("market_stats_invalid_prices target=%s excluded=%d", target.id, len(comparables) - len(prices))

        arr = np.asarray(prices, dtype=float)
        avg_price = float(arr.mean())

        doms = [d for d in (finite_or_zero(c.days_on_market) for c in comparables) if d >= 0]
        avg_dom = float(np.mean(doms)) if doms else 0.0

        target_price = finite_or_zero(target.price)
        price_diff = target_price - avg_price
        price_diff_percent = 0.0
        if avg_price > 0 and np.isfinite(avg_price):
            price_diff_percent = price_diff / avg_price * 100

        return MarketStats(
            avg_price=round_half_up(avg_price),
            median_price=round_half_up(median_price(prices)),
            min_price=round_half_up(arr.min()),
            max_price=round_half_up(arr.max()),
            avg_dom=round_half_up(avg_dom),
            price_diff=round_half_up(price_diff),
            price_diff_percent=round_half_up(price_diff_percent),
            comp_count=len(prices),
        )

    def market_trend(
        self,
        target: Property,
        comparables: Sequence[Property],
        stats: Optional[MarketStats] = None,
        today: Optional[datetime] = None,
    ) -> MarketTrend:
        """Target price history alongside the comparables' average at each date."""

        today = today or datetime.now(timezone.utc)
        history = _flat_padded_history(target, today)
        fallback = stats.avg_price if stats is not None else 0

        points: List[TrendPoint] = []
        for point in history:
            active = [price for price in (_active_price(c.price_history, point.date) for c in comparables) if price > 0]
            average = float(np.mean(active)) if active else fallback
            points.append(
                TrendPoint(date=point.date, property_price=point.price, market_average=round_half_up(average))
            )

        relist_marker = None
        if target.listing_status == "RELISTED" and target.relisted_at is not None:
            relist_marker = RelistMarker(date=target.relisted_at, price=_closest_price(history, target))
        return MarketTrend(points=points, relist_marker=relist_marker)


def _flat_padded_history(target: Property, today: datetime) -> List[PricePoint]:
    history = list(target.price_history)
    if len(history) >= 2:
        return history
    if len(history) == 1:
        return [history[0], PricePoint(date=today, price=history[0].price)]
    price = finite_or_zero(target.price) or finite_or_zero(target.initial_price)
    start = target.first_listed_at or today
    return [PricePoint(date=start, price=price), PricePoint(date=today, price=price)]


def _active_price(history: Sequence[PricePoint], when: datetime) -> float:
    """Price in effect at ``when``; 0 when the listing did not exist yet."""

    if not history:
        return 0.0
    when_ts = as_utc(when)
    if as_utc(history[0].date) > when_ts:
        return 0.0
    active = history[0]
    for entry in history:
        if as_utc(entry.date) <= when_ts:
            active = entry
        else:
            break
    return finite_or_zero(active.price)


def _closest_price(history: Sequence[PricePoint], target: Property) -> float:
    relisted = as_utc(target.relisted_at)
    if not history:
        return finite_or_zero(target.price)
    closest = min(history, key=lambda entry: abs(as_utc(entry.date) - relisted))
    return closest.price


__all__ = ["MarketStatsCalculator", "median_price"]
