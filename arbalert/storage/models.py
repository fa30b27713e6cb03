"""Data models for the arbitrage alert bot."""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class UserProfile:
    """Subscriber settings."""
    user_id: int
    watchlist: List[str] = field(default_factory=list)
    blacklist: List[str] = field(default_factory=list)
    min_profit: Optional[float] = None  # fraction, e.g. 0.02 for 2%
    min_volume: Optional[float] = None
    target_currency: str = "USDT"
    use_top_n: bool = False
    paused: bool = False
