"""Alert payloads for detected arbitrage opportunities."""

import html
from dataclasses import dataclass
from typing import Optional

from .types import ArbitrageOpportunity, TrustScore
from .utils import format_percentage, format_price

TRUST_SCORE_EMOJIS = {
    TrustScore.GREEN: "🟢",
    TrustScore.YELLOW: "🟡",
    TrustScore.RED: "🔴",
}


def trust_glyph(trust_score: Optional[TrustScore]) -> str:
    """Glyph for a trust tier; no glyph when the tier is absent."""
    if trust_score is None:
        return ""
    return TRUST_SCORE_EMOJIS.get(trust_score, TRUST_SCORE_EMOJIS[TrustScore.RED])


@dataclass(frozen=True)
class AlertPayload:
    """Display fields of an arbitrage alert."""
    headline: str
    coin_name: str
    coin_pair: str
    buy_price: str
    buy_market: str
    buy_url: Optional[str]
    sell_price: str
    sell_market: str
    sell_url: Optional[str]
    volume: str
    profit_percent: str
    trust: str

    def to_html(self) -> str:
        """Render the payload as Telegram HTML."""
        return (
            f"💰 <b>{self.headline}</b>\n"
            f"🪙 <b>Coin:</b> <b>{html.escape(self.coin_name)}</b>\n"
            f"🖇️ <b>Coin Pair:</b> {html.escape(self.coin_pair)}\n"
            f"📉 <b>Buy Price:</b> <i>${self.buy_price}</i> on {_market_link(self.buy_market, self.buy_url)}\n"
            f"📈 <b>Sell Price:</b> <i>${self.sell_price}</i> on {_market_link(self.sell_market, self.sell_url)}\n"
            f"💵 <b>24h Volume:</b> {self.volume}\n"
            f"📊 <b>Potential Profit:</b> <u>{self.profit_percent}%</u>\n"
            f"🔒 <b>Trust Score:</b> {self.trust}"
        )


def _market_link(market: str, url: Optional[str]) -> str:
    name = html.escape(market or "")
    if not url:
        return name
    return f'<a href="{html.escape(url, quote=True)}">{name}</a>'


def format_opportunity(coin_name: str, opportunity: ArbitrageOpportunity) -> AlertPayload:
    """Build the display payload for an opportunity."""
    return AlertPayload(
        headline="Arbitrage Opportunity Found:",
        coin_name=coin_name,
        coin_pair=opportunity.coin_pair,
        buy_price=format_price(opportunity.buy_price),
        buy_market=opportunity.buy_market,
        buy_url=opportunity.buy_url,
        sell_price=format_price(opportunity.sell_price),
        sell_market=opportunity.sell_market,
        sell_url=opportunity.sell_url,
        volume=opportunity.volume,
        profit_percent=format_percentage(opportunity.profit_percent),
        trust=trust_glyph(opportunity.trust_score),
    )
