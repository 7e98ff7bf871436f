"""Historical daily close providers for equities."""

from abc import ABC, abstractmethod
from typing import Dict, Optional

import pandas as pd
import requests
import yfinance as yf
from loguru import logger

from price_forecast.data.series import PricePoint, PriceSeries
from price_forecast.errors import DataProviderError, InvalidSeriesError

RATE_LIMIT_MESSAGE = "API rate limit exceeded. Please try again in a minute."


class IDataProvider(ABC):
    """Interface for data providers. Implement this to add new data sources."""

    @abstractmethod
    def fetch_daily_closes(self, symbol: str, days: int = 30) -> PriceSeries:
        """
        Fetch the most recent daily closes for a symbol.

        Args:
            symbol: Ticker symbol (e.g., 'AAPL', 'SPY')
            days: Number of most recent trading days to return

        Returns:
            PriceSeries in ascending date order
        """
        pass


class AlphaVantageProvider(IDataProvider):
    """
    Daily closes from the Alpha Vantage ``TIME_SERIES_DAILY`` endpoint.
    The free tier is rate limited to a handful of calls per minute.
    """

    BASE_URL = "https://www.alphavantage.co/query"

    def __init__(self, api_key: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        if not api_key:
            raise ValueError("Alpha Vantage API key is not set (ALPHA_VANTAGE_API_KEY)")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()
        logger.info("Initialized Alpha Vantage provider")

    def fetch_daily_closes(self, symbol: str, days: int = 30) -> PriceSeries:
        logger.info(f"Fetching data from Alpha Vantage for symbol: {symbol}")

        try:
            response = self.session.get(
                self.BASE_URL,
                params={
                    "function": "TIME_SERIES_DAILY",
                    "symbol": symbol,
                    "apikey": self.api_key,
                    "outputsize": "compact",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Error fetching stock data for {symbol}: {e}")
            raise DataProviderError("Failed to fetch stock data") from e

        if response.status_code == 429:
            raise DataProviderError(RATE_LIMIT_MESSAGE, status_code=429)
        try:
            response.raise_for_status()
            payload = response.json()
        except (requests.HTTPError, ValueError) as e:
            logger.error(f"Bad response from Alpha Vantage for {symbol}: {e}")
            raise DataProviderError("Failed to fetch stock data") from e

        return self._parse_payload(payload, symbol, days)

    def _parse_payload(self, payload: Dict, symbol: str, days: int) -> PriceSeries:
        if "Error Message" in payload:
            raise DataProviderError("Invalid stock symbol", status_code=404)
        # Throttled responses come back as 200 with a Note/Information field
        if "Time Series (Daily)" not in payload and ("Note" in payload or "Information" in payload):
            raise DataProviderError(RATE_LIMIT_MESSAGE, status_code=429)
        if "Time Series (Daily)" not in payload:
            raise DataProviderError("No data available for this stock symbol", status_code=404)

        time_series = payload["Time Series (Daily)"]
        # Provider returns newest first
        dates = sorted(time_series.keys(), reverse=True)[:days]
        dates.reverse()

        closes = pd.to_numeric(
            pd.Series([time_series[d].get("4. close") for d in dates]), errors="coerce"
        )
        if closes.isna().any():
            raise DataProviderError("Invalid price data received")

        logger.info(f"Processed {len(dates)} closes for {symbol}: {dates[0]} to {dates[-1]}")

        try:
            return PriceSeries(
                [PricePoint(date=d, close=float(c)) for d, c in zip(dates, closes)],
                symbol=symbol,
            )
        except InvalidSeriesError as e:
            raise DataProviderError("Invalid price data received") from e


class YFinanceProvider(IDataProvider):
    """
    Stock/ETF data provider using yfinance (Yahoo Finance).
    Free, no API key required, good for US equities and major ETFs.
    """

    def __init__(self):
        logger.info("Initialized yfinance provider")

    def fetch_daily_closes(self, symbol: str, days: int = 30) -> PriceSeries:
        logger.info(f"Fetching {symbol} daily closes from yfinance (last {days} days)")

        # Calendar window comfortably wider than `days` trading sessions
        period = f"{max(days * 2, 10)}d"
        try:
            df = yf.Ticker(symbol).history(period=period, interval="1d", auto_adjust=True)
        except Exception as e:
            logger.error(f"Error fetching {symbol} from yfinance: {e}")
            raise DataProviderError("Failed to fetch stock data") from e

        if df.empty:
            raise DataProviderError("No data available for this stock symbol", status_code=404)

        df = df.reset_index()
        time_col = "Date" if "Date" in df.columns else "Datetime"
        df = df.rename(columns={time_col: "timestamp", "Close": "close"}).tail(days)

        try:
            return PriceSeries.from_frame(df, date_col="timestamp", price_col="close", symbol=symbol)
        except InvalidSeriesError as e:
            raise DataProviderError("Invalid price data received") from e


def get_provider(name: str, **kwargs) -> IDataProvider:
    """
    Factory function to get a data provider by name.

    Args:
        name: 'alphavantage' or 'yfinance'
        **kwargs: Provider-specific arguments (e.g. api_key)
    """
    if name.lower() in ("alphavantage", "alpha_vantage"):
        return AlphaVantageProvider(api_key=kwargs.get("api_key", ""), timeout=kwargs.get("timeout", 10.0))
    elif name.lower() in ("yfinance", "yahoo"):
        return YFinanceProvider()
    else:
        raise ValueError(f"Unknown data provider: {name}. Use 'alphavantage' or 'yfinance'")
