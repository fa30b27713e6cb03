"""Market data source interface."""

from abc import ABC, abstractmethod
from typing import List

from ..core.types import CoinTickers, TopCoin


class MarketDataError(Exception):
    """Raised when the market data source cannot serve a request."""


class MarketDataSource(ABC):
    """Read-only market data collaborator."""

    @abstractmethod
    async def fetch_tickers(self, coin_id: str) -> CoinTickers:
        """Fetch exchange ticker quotes for one asset."""
        pass

    @abstractmethod
    async def fetch_ranked_coins(self, page: int = 1, per_page: int = 100) -> List[TopCoin]:
        """Fetch assets ranked by 24h volume."""
        pass
