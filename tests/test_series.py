"""Tests for PriceSeries construction and validation."""

import numpy as np
import pandas as pd
import pytest

from price_forecast.data import PricePoint, PriceSeries
from price_forecast.errors import InvalidSeriesError


class TestConstruction:
    def test_from_records_wire_shape(self):
        series = PriceSeries.from_records(
            [
                {"date": "2024-03-01", "closePrice": 101.5},
                {"date": "2024-03-04", "closePrice": "102.25"},
            ],
            symbol="AAPL",
        )
        assert len(series) == 2
        assert series.dates == ["2024-03-01", "2024-03-04"]
        assert series.last_close == 102.25
        assert series.symbol == "AAPL"

    def test_from_prices_generates_business_days(self):
        series = PriceSeries.from_prices([1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
        parsed = pd.to_datetime(series.dates)
        assert parsed.is_monotonic_increasing
        assert all(d.dayofweek < 5 for d in parsed)

    def test_from_prices_length_mismatch(self):
        with pytest.raises(InvalidSeriesError):
            PriceSeries.from_prices([1.0, 2.0], dates=["2024-01-02"])

    def test_from_frame_sorts_and_drops_missing(self):
        df = pd.DataFrame(
            {
                "timestamp": pd.to_datetime(["2024-01-04", "2024-01-02", "2024-01-03"], utc=True),
                "close": [12.0, 10.0, None],
            }
        )
        series = PriceSeries.from_frame(df)
        assert series.dates == ["2024-01-02", "2024-01-04"]
        np.testing.assert_allclose(series.closes, [10.0, 12.0])

    def test_to_records_round_trip(self):
        records = [{"date": "2024-01-02", "closePrice": 5.0}, {"date": "2024-01-03", "closePrice": 6.0}]
        assert PriceSeries.from_records(records).to_records() == records

    def test_tail(self):
        series = PriceSeries.from_prices([1, 2, 3, 4, 5], symbol="X")
        tail = series.tail(2)
        assert list(tail.closes) == [4.0, 5.0]
        assert tail.symbol == "X"


class TestValidation:
    def test_empty(self):
        with pytest.raises(InvalidSeriesError):
            PriceSeries([])

    def test_duplicate_dates(self):
        with pytest.raises(InvalidSeriesError, match="strictly increasing"):
            PriceSeries([PricePoint("2024-01-02", 1.0), PricePoint("2024-01-02", 2.0)])

    def test_descending_dates(self):
        with pytest.raises(InvalidSeriesError):
            PriceSeries([PricePoint("2024-01-03", 1.0), PricePoint("2024-01-02", 2.0)])

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), 0.0, -3.0])
    def test_bad_close(self, bad):
        with pytest.raises(InvalidSeriesError):
            PriceSeries([PricePoint("2024-01-02", 1.0), PricePoint("2024-01-03", bad)])

    def test_non_numeric_close_in_records(self):
        with pytest.raises(InvalidSeriesError):
            PriceSeries.from_records([{"date": "2024-01-02", "closePrice": "abc"}])

    def test_unparseable_date(self):
        with pytest.raises(InvalidSeriesError):
            PriceSeries([PricePoint("not-a-date", 1.0)])

    def test_invalid_series_is_value_error(self):
        with pytest.raises(ValueError):
            PriceSeries([])
