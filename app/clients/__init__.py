"""Market data clients."""

from app.clients.protocol import MarketDataSource
from app.clients.binance_rest import BinanceRestClient, RateLimiter, parse_kline_row
from app.clients.coingecko_rest import CoinGeckoClient
from app.clients.synthetic import SyntheticMarketData
from app.clients.failover import FailoverMarketData, create_market_data_source

__all__ = [
    "MarketDataSource",
    "BinanceRestClient",
    "RateLimiter",
    "parse_kline_row",
    "CoinGeckoClient",
    "SyntheticMarketData",
    "FailoverMarketData",
    "create_market_data_source",
]
