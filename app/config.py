"""Application configuration."""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.models.config import IndicatorConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Instrument
    symbol: str = "SOLUSDT"
    display_symbol: str = "SOL/USDT"
    coingecko_id: str = "solana"
    interval: str = "15m"

    # Refresh cycle
    refresh_interval: float = 30.0  # seconds between ticks
    fetch_timeout: float = 8.0  # per upstream call
    candle_limit: int = 150  # candles fetched and kept in the series
    order_book_depth: int = 10
    send_timeout: float = 5.0  # per subscriber push

    # Market data sources, tried in order
    market_data_sources: list[str] = ["binance", "coingecko"]
    binance_base_url: str = "https://api.binance.com"
    coingecko_base_url: str = "https://api.coingecko.com"
    fallback_price: float = 245.86  # used before any price was ever seen

    # Indicator periods
    ema_fast_period: int = 7
    ema_mid_period: int = 25
    ema_slow_period: int = 99
    atr_period: int = 14
    bollinger_period: int = 20
    bollinger_std_dev: float = 2.0
    psar_accel_initial: float = 0.02
    psar_accel_max: float = 0.2
    psar_window: int = 50
    htf_h1_window: int = 240
    htf_h4_window: int = 960

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    debug: bool = False
    log_level: str = "INFO"
    static_dir: str | None = None  # serve a dashboard from here if set

    def indicator_config(self) -> IndicatorConfig:
        """Indicator periods as the core config model."""
        return IndicatorConfig(
            ema_fast_period=self.ema_fast_period,
            ema_mid_period=self.ema_mid_period,
            ema_slow_period=self.ema_slow_period,
            atr_period=self.atr_period,
            bollinger_period=self.bollinger_period,
            bollinger_std_dev=self.bollinger_std_dev,
            psar_accel_initial=self.psar_accel_initial,
            psar_accel_max=self.psar_accel_max,
            psar_window=self.psar_window,
            htf_h1_window=self.htf_h1_window,
            htf_h4_window=self.htf_h4_window,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
