"""Core arbitrage detection logic."""

from .types import ArbitrageOpportunity, CoinTickers, TickerQuote, TopCoin, TrustScore, UserFilters
from .detector import ArbitrageDetector, find_opportunity
from .formatter import AlertPayload, format_opportunity

__all__ = [
    'ArbitrageOpportunity',
    'CoinTickers',
    'TickerQuote',
    'TopCoin',
    'TrustScore',
    'UserFilters',
    'ArbitrageDetector',
    'find_opportunity',
    'AlertPayload',
    'format_opportunity'
]
