"""Configuration management for the arbitrage alert bot."""

import os
from pathlib import Path
from typing import Optional
import yaml
from pydantic import BaseModel, Field, field_validator


class MarketDataConfig(BaseModel):
    """Market data source configuration."""
    api_key: str = ""
    base_url: str = "https://api.coingecko.com/api/v3"
    request_timeout_s: float = 10.0
    top_n: int = 100
    vs_currency: str = "usd"


class ThresholdConfig(BaseModel):
    """Process-wide defaults applied to new user profiles."""
    min_profit_fraction: float = 0.02  # 2%
    min_volume: float = 1000.0
    target_currency: str = "USDT"

    @field_validator("min_profit_fraction")
    @classmethod
    def _positive_profit(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("min_profit_fraction must be > 0")
        return value

    @field_validator("min_volume")
    @classmethod
    def _non_negative_volume(cls, value: float) -> float:
        if value < 0:
            raise ValueError("min_volume must be >= 0")
        return value

    @field_validator("target_currency")
    @classmethod
    def _short_symbol(cls, value: str) -> str:
        value = value.strip().upper()
        if not 1 <= len(value) <= 5:
            raise ValueError("target_currency must be 1-5 characters")
        return value


class SchedulerConfig(BaseModel):
    """Periodic task configuration."""
    scan_interval_s: float = 10.0
    top_coins_refresh_s: float = 3600.0
    alert_cooldown_s: float = 0.0  # 0 = alert on every tick


class TelegramConfig(BaseModel):
    """Telegram configuration."""
    token: str
    notice_ttl_s: float = 5.0
    confirmation_ttl_s: float = 10.0
    toggle_ttl_s: float = 20.0


class StorageConfig(BaseModel):
    """Storage configuration."""
    db_path: str = "arbalert.sqlite"


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    serialize: bool = False  # JSON lines on stderr
    file: Optional[str] = None


class Config(BaseModel):
    """Main configuration model."""
    telegram: TelegramConfig
    market_data: MarketDataConfig = Field(default_factory=MarketDataConfig)
    thresholds: ThresholdConfig = Field(default_factory=ThresholdConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load_from_file(cls, config_path: str = "config.yaml") -> "Config":
        """Load configuration from YAML file with environment variable substitution."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "r") as f:
            config_str = f.read()

        # Substitute environment variables
        for key, value in os.environ.items():
            config_str = config_str.replace(f"${{{key}}}", value)

        config_data = yaml.safe_load(config_str) or {}
        return cls(**config_data)


def get_config(config_path: str = "config.yaml") -> Config:
    """Get configuration instance."""
    return Config.load_from_file(config_path)
