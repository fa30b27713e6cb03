"""Market data sources."""

from .base import MarketDataError, MarketDataSource
from .coingecko import CoinGeckoClient

__all__ = ["MarketDataError", "MarketDataSource", "CoinGeckoClient"]
