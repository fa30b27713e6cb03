"""Test alert payload formatting."""

from arbalert.core.formatter import format_opportunity, trust_glyph
from arbalert.core.types import ArbitrageOpportunity, TrustScore
from arbalert.core.utils import format_price


def make_opportunity(**overrides):
    fields = dict(
        coin_pair="BTC/USDT",
        buy_price=60000.0,
        buy_market="Binance",
        buy_url="https://www.binance.com/en/trade/BTC_USDT",
        sell_price=61250.25,
        sell_market="Kraken",
        sell_url="https://pro.kraken.com/app/trade/btc-usdt",
        volume="$740,000,000",
        trust_score=TrustScore.GREEN,
        profit_percent=2.08,
    )
    fields.update(overrides)
    return ArbitrageOpportunity(**fields)


class TestTrustGlyph:
    """Test trust tier glyphs."""

    def test_tiers(self):
        assert trust_glyph(TrustScore.GREEN) == "🟢"
        assert trust_glyph(TrustScore.YELLOW) == "🟡"
        assert trust_glyph(TrustScore.RED) == "🔴"

    def test_absent_has_no_glyph(self):
        assert trust_glyph(None) == ""

    def test_unknown_raw_tier_is_red(self):
        assert trust_glyph(TrustScore.parse("purple")) == "🔴"
        assert TrustScore.parse("") is None
        assert TrustScore.parse("YELLOW") is TrustScore.YELLOW


class TestFormatOpportunity:
    """Test payload fields and HTML rendering."""

    def test_payload_fields(self):
        payload = format_opportunity("Bitcoin", make_opportunity())

        assert payload.headline == "Arbitrage Opportunity Found:"
        assert payload.coin_name == "Bitcoin"
        assert payload.coin_pair == "BTC/USDT"
        assert payload.buy_price == "60000"
        assert payload.sell_price == "61250.25"
        assert payload.volume == "$740,000,000"
        assert payload.profit_percent == "2.08"
        assert payload.trust == "🟢"

    def test_deterministic(self):
        opportunity = make_opportunity()
        assert format_opportunity("Bitcoin", opportunity) == format_opportunity("Bitcoin", opportunity)

    def test_html_rendering(self):
        text = format_opportunity("Bitcoin", make_opportunity()).to_html()

        assert "<b>Arbitrage Opportunity Found:</b>" in text
        assert "<b>Coin:</b> <b>Bitcoin</b>" in text
        assert '<i>$60000</i> on <a href="https://www.binance.com/en/trade/BTC_USDT">Binance</a>' in text
        assert '<i>$61250.25</i> on <a href="https://pro.kraken.com/app/trade/btc-usdt">Kraken</a>' in text
        assert "<b>24h Volume:</b> $740,000,000" in text
        assert "<u>2.08%</u>" in text
        assert text.endswith("<b>Trust Score:</b> 🟢")

    def test_market_without_link(self):
        text = format_opportunity("Bitcoin", make_opportunity(sell_url=None)).to_html()
        assert "on Kraken\n" in text

    def test_names_are_escaped(self):
        text = format_opportunity("A<B>", make_opportunity(buy_market="X & Y")).to_html()
        assert "A&lt;B&gt;" in text
        assert ">X &amp; Y</a>" in text

    def test_profit_keeps_two_decimals(self):
        payload = format_opportunity("Bitcoin", make_opportunity(profit_percent=5.0, trust_score=None))
        assert payload.profit_percent == "5.00"
        assert payload.trust == ""


class TestFormatPrice:
    """Test price rendering."""

    def test_keeps_shortest_digits(self):
        assert format_price(67000.123456789) == "67000.123456789"
        assert format_price(0.1) == "0.1"

    def test_tiny_price_is_not_cut_off(self):
        assert format_price(1.23e-13) == "0.000000000000123"

    def test_whole_numbers(self):
        assert format_price(60000.0) == "60000"
        assert format_price(1e16) == "10000000000000000"

    def test_tiny_price_in_alert(self):
        payload = format_opportunity("Pepe", make_opportunity(buy_price=1.23e-13))
        assert payload.buy_price == "0.000000000000123"
