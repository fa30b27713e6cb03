"""Sample market data for testing the alert bot."""

from arbalert.core.types import TickerQuote, TrustScore, UserFilters


def make_quote(price, market, base="X", target="USDT", volume=50000.0,
               trust=TrustScore.GREEN, converted_volume=None, trade_url=None):
    return TickerQuote(
        base=base,
        target=target,
        market=market,
        volume=volume,
        trust_score=trust,
        price=price,
        converted_volume=converted_volume if converted_volume is not None else volume,
        trade_url=trade_url or f"https://{market.lower()}.example/trade/{base}_{target}",
    )


def make_filters(min_profit=0.02, min_volume=1000.0, target="USDT", blacklist=()):
    return UserFilters(
        target_currency=target,
        min_volume=min_volume,
        min_profit_fraction=min_profit,
        blacklist=frozenset(blacklist),
    )


# Raw CoinGecko /coins/{id}/tickers payload
SAMPLE_TICKERS_RESPONSE = {
    "name": "Bitcoin",
    "tickers": [
        {
            "base": "BTC",
            "target": "USDT",
            "market": {"name": "Binance", "identifier": "binance"},
            "last": 60000.0,
            "volume": 12345.6,
            "converted_last": {"btc": 1.0, "eth": 20.1, "usd": 60010.5},
            "converted_volume": {"btc": 12345.6, "eth": 248000.0, "usd": 740000000.0},
            "trust_score": "green",
            "trade_url": "https://www.binance.com/en/trade/BTC_USDT",
        },
        {
            "base": "BTC",
            "target": "USDT",
            "market": {"name": "Kraken", "identifier": "kraken"},
            "last": 60500.0,
            "volume": "n/a",
            "converted_last": {"usd": "60500"},
            "converted_volume": {"usd": 1000000.0},
            "trust_score": None,
            "trade_url": None,
        },
        {
            "base": "BTC",
            "target": "EUR",
            "market": {"name": "Bitstamp"},
            "volume": 800.0,
            "converted_last": {"usd": 60100.0},
            "converted_volume": {"usd": 48000000.0},
            "trust_score": "purple",
            "trade_url": "https://www.bitstamp.net/markets/btc/eur/",
        },
    ],
}

# Raw CoinGecko /coins/markets payload
SAMPLE_MARKETS_RESPONSE = [
    {
        "id": "tether",
        "symbol": "usdt",
        "name": "Tether",
        "market_cap": 110000000000,
        "last_updated": "2024-08-01T12:00:00.000Z",
    },
    {
        "id": "bitcoin",
        "symbol": "btc",
        "name": "Bitcoin",
        "market_cap": 1200000000000.5,
        "last_updated": "2024-08-01T12:00:01.000Z",
    },
    {
        "id": "ethereum",
        "symbol": "eth",
        "name": "Ethereum",
        "market_cap": None,
        "last_updated": None,
    },
]
