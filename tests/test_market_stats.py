from datetime import datetime, timezone

import pytest

from dealfinder.models.property import Property
from dealfinder.services.market_stats import MarketStatsCalculator, median_price

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _builder(pid: str, price, dom=None, history=None, **overrides) -> Property:
    fields = {
        "id": pid,
        "price": price,
        "days_on_market": dom,
        "price_history": history or [],
        "listing_status": "Active",
    }
    fields.update(overrides)
    return Property(**fields)


def _point(month: int, price: float):
    return {"date": datetime(2024, month, 1, tzinfo=timezone.utc), "price": price}


def test_median_of_odd_and_even_lengths():
    assert median_price([200_000, 100_000, 150_000]) == 150_000
    assert median_price([250_000, 100_000, 200_000, 150_000]) == 175_000
    assert median_price([]) == 0.0


def test_compute_stats_over_comparables():
    target = _builder("t", 230_000)
    comps = [_builder("a", 100_000, dom=10), _builder("b", 150_000, dom=20), _builder("c", 200_000, dom=31)]

    stats = MarketStatsCalculator().compute_stats(target, comps)

    assert stats.avg_price == 150_000
    assert stats.median_price == 150_000
    assert stats.min_price == 100_000
    assert stats.max_price == 200_000
    assert stats.avg_dom == 20
    assert stats.price_diff == 80_000
    assert stats.price_diff_percent == 53
    assert stats.comp_count == 3


def test_negative_price_diff_rounds_half_up():
    target = _builder("t", 150_000)
    comps = [_builder(str(i), price) for i, price in enumerate([100_000, 150_000, 200_000, 250_000])]
    stats = MarketStatsCalculator().compute_stats(target, comps)
    assert stats.median_price == 175_000
    assert stats.avg_price == 175_000
    assert stats.price_diff == -25_000
    assert stats.price_diff_percent == -14


def test_missing_dom_counts_as_zero():
    target = _builder("t", 100_000)
    stats = MarketStatsCalculator().compute_stats(target, [_builder("a", 100_000, dom=30), _builder("b", 100_000)])
    assert stats.avg_dom == 15


def test_invalid_prices_are_excluded_from_price_stats():
    target = _builder("t", 100_000)
    comps = [_builder("a", 100_000), _builder("b", 0.0), _builder("c", None), _builder("d", 300_000)]
    stats = MarketStatsCalculator().compute_stats(target, comps)
    assert stats.comp_count == 2
    assert stats.avg_price == 200_000
    assert stats.min_price == 100_000


@pytest.mark.parametrize("comps", [[], [_builder("a", 0.0)], [_builder("a", None), _builder("b", -5.0)]])
def test_insufficient_data_returns_none(comps):
    assert MarketStatsCalculator().compute_stats(_builder("t", 100_000), comps) is None


def test_target_without_price_diffs_against_zero():
    stats = MarketStatsCalculator().compute_stats(_builder("t", None), [_builder("a", 200_000)])
    assert stats.price_diff == -200_000
    assert stats.price_diff_percent == -100


def test_market_trend_tracks_comparable_prices_over_target_history():
    target = _builder("t", 380_000, history=[_point(1, 400_000), _point(3, 380_000)])
    comps = [
        _builder("a", 300_000, history=[_point(1, 320_000), _point(2, 300_000)]),
        _builder("b", 500_000, history=[_point(2, 500_000)]),
    ]
    calculator = MarketStatsCalculator()
    stats = calculator.compute_stats(target, comps)

    trend = calculator.market_trend(target, comps, stats, today=NOW)

    assert [point.property_price for point in trend.points] == [400_000, 380_000]
    # "b" is not listed yet in January
    assert trend.points[0].market_average == 320_000
    assert trend.points[1].market_average == 400_000
    assert trend.relist_marker is None


def test_market_trend_pads_short_history_to_today():
    target = _builder("t", 250_000, history=[_point(2, 250_000)])
    trend = MarketStatsCalculator().market_trend(target, [], None, today=NOW)
    assert len(trend.points) == 2
    assert trend.points[-1].date == NOW
    assert trend.points[-1].property_price == 250_000
    assert all(point.market_average == 0 for point in trend.points)


def test_market_trend_without_history_uses_stats_average():
    listed = datetime(2024, 3, 1, tzinfo=timezone.utc)
    target = _builder("t", 210_000, first_listed_at=listed)
    comps = [_builder("a", 200_000)]
    calculator = MarketStatsCalculator()
    trend = calculator.market_trend(target, comps, calculator.compute_stats(target, comps), today=NOW)
    assert [point.date for point in trend.points] == [listed, NOW]
    assert [point.market_average for point in trend.points] == [200_000, 200_000]


def test_relisted_target_gets_marker_at_closest_history_price():
    target = _builder(
        "t",
        360_000,
        history=[_point(1, 400_000), _point(4, 360_000)],
        listing_status="RELISTED",
        relisted_at=datetime(2024, 3, 25, tzinfo=timezone.utc),
    )
    trend = MarketStatsCalculator().market_trend(target, [], None, today=NOW)
    assert trend.relist_marker is not None
    assert trend.relist_marker.price == 360_000


def test_stats_and_trend_are_stable_and_leave_inputs_untouched():
    target = _builder("t", 380_000, history=[_point(1, 400_000), _point(3, 380_000)])
    comps = [
        _builder("a", 300_000, dom=12, history=[_point(1, 320_000), _point(2, 300_000)]),
        _builder("b", 500_000, dom=40, history=[_point(2, 500_000)]),
    ]
    before = [prop.model_dump() for prop in [target, *comps]]
    calculator = MarketStatsCalculator()

    stats = calculator.compute_stats(target, comps)
    assert calculator.compute_stats(target, comps) == stats
    first = calculator.market_trend(target, comps, stats, today=NOW)
    second = calculator.market_trend(target, comps, stats, today=NOW)
    assert first.model_dump() == second.model_dump()
    assert [prop.model_dump() for prop in [target, *comps]] == before


def test_fractional_dom_is_averaged_unrounded():
    target = _builder("t", 100_000)
    stats = MarketStatsCalculator().compute_stats(target, [_builder("a", 100_000, dom=0.6), _builder("b", 100_000, dom=0.6)])
    assert stats.avg_dom == 1
