"""Price series container handed to the forecasting pipeline."""

import math
import numbers
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd
from loguru import logger

from price_forecast.errors import InvalidSeriesError


@dataclass(frozen=True)
class PricePoint:
    """Closing price for one trading date."""

    date: str  # ISO date, e.g. '2024-05-17'
    close: float


class PriceSeries:
    """
    Chronological sequence of daily closing prices for one symbol.

    Dates must be unique and strictly increasing; every close must be a
    finite, positive number.
    """

    def __init__(self, points: Iterable[PricePoint], symbol: Optional[str] = None):
        self.points: List[PricePoint] = list(points)
        self.symbol = symbol
        self._validate()

    def _validate(self):
        if not self.points:
            raise InvalidSeriesError("Price series is empty")

        for point in self.points:
            if not isinstance(point.close, numbers.Real) or not math.isfinite(point.close):
                raise InvalidSeriesError(f"Invalid close price on {point.date}: {point.close!r}")
            if point.close <= 0:
                raise InvalidSeriesError(f"Close price must be positive on {point.date}: {point.close}")

        try:
            parsed = pd.to_datetime([p.date for p in self.points])
        except (ValueError, TypeError) as e:
            raise InvalidSeriesError(f"Unparseable date in price series: {e}") from e

        diffs = np.diff(parsed.asi8)
        if (diffs <= 0).any():
            bad = int(np.argmax(diffs <= 0))
            raise InvalidSeriesError(
                f"Dates must be strictly increasing: {self.points[bad].date} "
                f"is followed by {self.points[bad + 1].date}"
            )

    # ------------------------------------------------------------------ #
    #  Constructors
    # ------------------------------------------------------------------ #

    @classmethod
    def from_records(cls, records: Sequence[Dict], symbol: Optional[str] = None) -> "PriceSeries":
        """Build from ``[{'date': ..., 'closePrice': ...}]`` as sent by the data service."""
        points = []
        for rec in records:
            close = rec.get("closePrice", rec.get("close"))
            try:
                close = float(close)
            except (TypeError, ValueError):
                raise InvalidSeriesError(f"Invalid close price on {rec.get('date')}: {close!r}")
            points.append(PricePoint(date=str(rec["date"]), close=close))
        return cls(points, symbol=symbol)

    @classmethod
    def from_prices(
        cls,
        prices: Sequence[float],
        dates: Optional[Sequence[str]] = None,
        symbol: Optional[str] = None,
        end_date: str = "2024-01-02",
    ) -> "PriceSeries":
        """
        Build from bare prices.

        When no dates are supplied, consecutive business days ending at
        ``end_date`` are generated.
        """
        if dates is None:
            dates = pd.bdate_range(end=end_date, periods=len(prices)).strftime("%Y-%m-%d").tolist()
        if len(dates) != len(prices):
            raise InvalidSeriesError(
                f"dates and prices must be same length ({len(dates)} != {len(prices)})"
            )
        return cls(
            [PricePoint(date=str(d), close=float(p)) for d, p in zip(dates, prices)],
            symbol=symbol,
        )

    @classmethod
    def from_frame(
        cls,
        df: pd.DataFrame,
        date_col: str = "timestamp",
        price_col: str = "close",
        symbol: Optional[str] = None,
    ) -> "PriceSeries":
        """Build from a DataFrame such as the ones returned by the data providers."""
        if df.empty:
            raise InvalidSeriesError("Price frame is empty")

        df = df[[date_col, price_col]].copy()
        df[price_col] = pd.to_numeric(df[price_col], errors="coerce")
        dropped = int(df[price_col].isna().sum())
        if dropped:
            logger.warning(f"Dropping {dropped} rows with missing {price_col}")
            df = df.dropna(subset=[price_col])

        df[date_col] = pd.to_datetime(df[date_col])
        df = df.sort_values(date_col).reset_index(drop=True)

        return cls(
            [
                PricePoint(date=ts.strftime("%Y-%m-%d"), close=float(close))
                for ts, close in zip(df[date_col], df[price_col])
            ],
            symbol=symbol,
        )

    # ------------------------------------------------------------------ #
    #  Accessors
    # ------------------------------------------------------------------ #

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self):
        return iter(self.points)

    @property
    def dates(self) -> List[str]:
        return [p.date for p in self.points]

    @property
    def closes(self) -> np.ndarray:
        return np.array([p.close for p in self.points], dtype=np.float64)

    @property
    def last_close(self) -> float:
        return self.points[-1].close

    @property
    def last_date(self) -> str:
        return self.points[-1].date

    def tail(self, n: int) -> "PriceSeries":
        """Most recent ``n`` points."""
        return PriceSeries(self.points[-n:], symbol=self.symbol)

    def to_records(self) -> List[Dict]:
        return [{"date": p.date, "closePrice": p.close} for p in self.points]

    def __repr__(self):
        return (
            f"<PriceSeries({self.symbol or '?'} n={len(self)} "
            f"{self.points[0].date}..{self.last_date})>"
        )
