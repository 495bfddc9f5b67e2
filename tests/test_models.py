"""
Tests for the market data models.
"""
from datetime import date

import pytest
from pydantic import ValidationError

from quantscore.models import (
    EstimatePoint,
    EstimateRecord,
    OptionsFlowRecord,
    PricePoint,
    PriceSeries,
    ShortInterestPoint,
    ShortInterestRecord,
)

from tests.conftest import make_series


def bar(day: int, close: float = 10.0) -> PricePoint:
    return PricePoint(date=date(2024, 6, day), open=close, high=close + 1, low=close - 1, close=close, volume=100)


class TestPriceModels:
    def test_high_below_low_rejected(self):
        with pytest.raises(ValidationError):
            PricePoint(date=date(2024, 6, 3), open=10, high=9, low=11, close=10, volume=1)

    def test_non_positive_price_rejected(self):
        with pytest.raises(ValidationError):
            PricePoint(date=date(2024, 6, 3), open=10, high=11, low=0, close=10, volume=1)

    @pytest.mark.parametrize("value", [float("nan"), float("inf")])
    def test_non_finite_values_rejected(self, value):
        with pytest.raises(ValidationError):
            PricePoint(date=date(2024, 6, 3), open=10, high=11, low=9, close=10, volume=value)
        with pytest.raises(ValidationError):
            EstimatePoint(period_end=date(2024, 9, 30), eps_estimate=value, eps_estimate_prior=1.0)

    def test_duplicate_dates_rejected(self):
        with pytest.raises(ValidationError):
            PriceSeries(symbol="X", points=(bar(3), bar(3)))

    def test_unsorted_dates_rejected(self):
        with pytest.raises(ValidationError):
            PriceSeries(symbol="X", points=(bar(4), bar(3)))

    def test_series_is_immutable(self):
        series = PriceSeries(symbol="X", points=(bar(3),))
        with pytest.raises(ValidationError):
            series.symbol = "Y"

    def test_arrays(self):
        series = PriceSeries(symbol="X", points=(bar(3, 10), bar(4, 12)))
        assert series.closes.tolist() == [10.0, 12.0]
        assert series.highs.tolist() == [11.0, 13.0]
        assert series.last_close == 12.0
        assert series.last_date == date(2024, 6, 4)

    def test_empty_series(self):
        series = PriceSeries(symbol="X")
        assert len(series) == 0
        assert series.last_close is None
        assert series.last_date is None

    def test_until_truncates(self):
        series = make_series([1.0, 2.0, 3.0, 4.0], end=date(2024, 6, 4))
        cut = series.until(date(2024, 6, 2))
        assert cut.closes.tolist() == [1.0, 2.0]
        assert series.until(date(2024, 7, 1)) is series

    def test_tail(self):
        series = make_series([1.0, 2.0, 3.0])
        assert series.tail(2).closes.tolist() == [2.0, 3.0]
        assert series.tail(10) is series

    def test_to_frame(self):
        frame = make_series([1.0, 2.0, 3.0]).to_frame()
        assert list(frame.columns) == ["open", "high", "low", "close", "volume"]
        assert frame.index.name == "date"
        assert frame["close"].tolist() == [1.0, 2.0, 3.0]


class TestEstimates:
    def test_revision_uses_prior_consensus(self, estimates):
        assert estimates.eps_revision() == pytest.approx(0.1 / 1.4)

    def test_revision_falls_back_to_consecutive_periods(self):
        record = EstimateRecord(
            symbol="X",
            points=(
                EstimatePoint(period_end=date(2024, 3, 31), eps_estimate=2.0),
                EstimatePoint(period_end=date(2024, 6, 30), eps_estimate=1.5),
            ),
        )
        assert record.eps_revision() == pytest.approx(-0.25)

    def test_revision_clamped(self):
        record = EstimateRecord(
            symbol="X",
            points=(EstimatePoint(period_end=date(2024, 6, 30), eps_estimate=5.0, eps_estimate_prior=0.5),),
        )
        assert record.eps_revision() == 1.0

    def test_revision_needs_nonzero_base(self):
        record = EstimateRecord(
            symbol="X",
            points=(EstimatePoint(period_end=date(2024, 6, 30), eps_estimate=1.0, eps_estimate_prior=0.0),),
        )
        assert record.eps_revision() is None

    def test_days_to_nearest_earnings(self, estimates):
        assert estimates.days_to_nearest_earnings(date(2024, 7, 30)) == 2
        assert estimates.days_to_nearest_earnings(date(2024, 5, 3)) == 1
        assert EstimateRecord(symbol="X").days_to_nearest_earnings(date(2024, 5, 3)) is None


class TestPositioning:
    def test_short_interest_until(self, short_interest):
        assert len(short_interest.until(date(2024, 6, 1)).points) == 2

    def test_negative_short_interest_rejected(self):
        with pytest.raises(ValidationError):
            ShortInterestPoint(date=date(2024, 6, 1), short_interest=-1)

    def test_options_ratios(self, options_flow):
        assert options_flow.put_call_ratio == pytest.approx(1 / 3)
        assert options_flow.premium_skew == pytest.approx(0.75)

    def test_options_without_calls(self):
        record = OptionsFlowRecord(
            symbol="X", date=date(2024, 6, 1),
            call_volume=0, put_volume=10, call_premium=0, put_premium=100,
        )
        assert record.put_call_ratio is None
        assert record.premium_skew == 0.0

    def test_empty_short_interest(self):
        assert ShortInterestRecord(symbol="X").until(date(2024, 6, 1)).points == ()
