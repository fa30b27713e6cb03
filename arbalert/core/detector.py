"""Cross-exchange arbitrage detection over one asset's ticker quotes."""

from typing import Iterable, List, Optional
from loguru import logger

from .types import ArbitrageOpportunity, TickerQuote, UserFilters
from .utils import format_volume, to_number


class ArbitrageDetector:
    """Finds the cheapest and most expensive qualifying quote for an asset."""

    def filter_quotes(self, quotes: Iterable[TickerQuote], filters: UserFilters) -> List[TickerQuote]:
        """Return the quotes that pass the user's target, volume, trust and blacklist checks."""
        blacklist = {coin_id.lower() for coin_id in filters.blacklist}
        eligible = []

        for quote in quotes:
            if quote.target != filters.target_currency:
                continue

            volume = to_number(quote.volume)
            if volume is None or volume < filters.min_volume:
                continue

            if quote.trust_score is None:
                continue

            if (quote.base or "").lower() in blacklist:
                continue

            eligible.append(quote)

        return eligible

    def find_opportunity(self, quotes: Iterable[TickerQuote], filters: UserFilters) -> Optional[ArbitrageOpportunity]:
        """Detect an arbitrage spread among quotes, or return None."""
        cheap: Optional[TickerQuote] = None
        expensive: Optional[TickerQuote] = None
        cheap_price = expensive_price = 0.0

        for quote in self.filter_quotes(quotes or [], filters):
            price = to_number(quote.price)
            if price is None or price <= 0:
                continue
            # Strict comparisons keep the first-seen quote on ties
            if cheap is None or price < cheap_price:
                cheap, cheap_price = quote, price
            if expensive is None or price > expensive_price:
                expensive, expensive_price = quote, price

        if cheap is None or expensive is None:
            return None

        profit_percent = round((expensive_price - cheap_price) / cheap_price * 100, 2)
        threshold_percent = round(filters.min_profit_fraction * 100, 10)

        if profit_percent < threshold_percent:
            logger.debug(
                f"Spread {profit_percent:.2f}% on {cheap.base}/{cheap.target} "
                f"below threshold {threshold_percent}%"
            )
            return None

        logger.debug(
            f"Spread {profit_percent:.2f}% on {cheap.base}/{cheap.target}: "
            f"buy {cheap.market} @ {cheap_price}, sell {expensive.market} @ {expensive_price}"
        )

        return ArbitrageOpportunity(
            coin_pair=f"{cheap.base}/{cheap.target}",
            buy_price=cheap_price,
            buy_market=cheap.market,
            buy_url=cheap.trade_url,
            sell_price=expensive_price,
            sell_market=expensive.market,
            sell_url=expensive.trade_url,
            volume=format_volume(to_number(cheap.converted_volume)),
            trust_score=cheap.trust_score,
            profit_percent=profit_percent,
        )


def find_opportunity(quotes: Iterable[TickerQuote], filters: UserFilters) -> Optional[ArbitrageOpportunity]:
    """Module-level shortcut for ArbitrageDetector().find_opportunity."""
    return ArbitrageDetector().find_opportunity(quotes, filters)
