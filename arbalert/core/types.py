"""
Shared types and data structures for the arbitrage alert bot.
This file breaks circular imports between modules.
"""

from typing import FrozenSet, List, Optional
from dataclasses import dataclass, field
from enum import Enum


class TrustScore(Enum):
    """Confidence tier the market data source attaches to a ticker."""
    GREEN = "green"    # high
    YELLOW = "yellow"  # medium
    RED = "red"        # low

    @classmethod
    def parse(cls, value) -> Optional["TrustScore"]:
        """Map a raw trust value to a tier; unknown non-empty values are low confidence."""
        if value is None or value == "":
            return None
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.RED


@dataclass
class TickerQuote:
    """One exchange's quote for one asset against one target currency."""
    base: str
    target: str
    market: str
    volume: Optional[float] = None
    trust_score: Optional[TrustScore] = None
    price: Optional[float] = None             # converted to the common unit (USD)
    converted_volume: Optional[float] = None  # converted to the common unit (USD)
    trade_url: Optional[str] = None


@dataclass
class CoinTickers:
    """Ticker quotes fetched for one asset."""
    coin_id: str
    name: str
    quotes: List[TickerQuote] = field(default_factory=list)


@dataclass(frozen=True)
class UserFilters:
    """Effective filter configuration for one user."""
    target_currency: str
    min_volume: float
    min_profit_fraction: float
    blacklist: FrozenSet[str] = frozenset()


@dataclass
class ArbitrageOpportunity:
    """Detected cross-exchange spread for one asset."""
    coin_pair: str
    buy_price: float
    buy_market: str
    buy_url: Optional[str]
    sell_price: float
    sell_market: str
    sell_url: Optional[str]
    volume: str  # formatted 24h volume of the cheap leg
    trust_score: Optional[TrustScore]
    profit_percent: float


@dataclass
class TopCoin:
    """Entry of the ranked top-N coin snapshot."""
    id: str
    name: str
    symbol: str
    market_cap: Optional[float] = None
    last_updated: Optional[str] = None
