"""Data ingestion module."""

from .providers import AlphaVantageProvider, IDataProvider, YFinanceProvider, get_provider
from .series import PricePoint, PriceSeries

__all__ = [
    "IDataProvider",
    "AlphaVantageProvider",
    "YFinanceProvider",
    "get_provider",
    "PricePoint",
    "PriceSeries",
]
