"""
PICK LEAGUE — Central Configuration
All settings are loaded from environment variables with sensible defaults.
"""
from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional


class DataSourceSettings(BaseSettings):
    """Price provider API keys and endpoints."""
    alpha_vantage_api_key: str = Field(default="", env="ALPHA_VANTAGE_API_KEY")
    alpha_vantage_base_url: str = Field(default="https://www.alphavantage.co", env="ALPHA_VANTAGE_BASE_URL")
    # Free tier tolerates roughly 5 requests per minute
    alpha_vantage_requests_per_window: int = Field(default=5, env="ALPHA_VANTAGE_REQUESTS_PER_WINDOW")
    alpha_vantage_window_seconds: float = Field(default=60.0, env="ALPHA_VANTAGE_WINDOW_SECONDS")
    # TIME_SERIES_DAILY compact output covers about 100 trading days
    alpha_vantage_compact_days: int = Field(default=140, env="ALPHA_VANTAGE_COMPACT_DAYS")

    yahoo_base_url: str = Field(default="https://query1.finance.yahoo.com", env="YAHOO_BASE_URL")
    yahoo_user_agent: str = Field(
        default="Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
        env="YAHOO_USER_AGENT",
    )
    yahoo_history_lookback_days: int = Field(default=365, env="YAHOO_HISTORY_LOOKBACK_DAYS")

    request_timeout_seconds: float = Field(default=10.0, env="REQUEST_TIMEOUT_SECONDS")

    class Config:
        env_file = ".env"
        extra = "ignore"


class CacheSettings(BaseSettings):
    """Resolved price cache. TTLs are fixed, not admin-configurable."""
    current_price_ttl_seconds: int = 60
    historical_price_ttl_seconds: int = 3600
    max_entries: int = 2000

    class Config:
        env_file = ".env"
        extra = "ignore"


class EngineSettings(BaseSettings):
    """Resolver / valuator / leaderboard tuning."""
    max_concurrent_prices: int = Field(default=8, env="MAX_CONCURRENT_PRICES")
    max_concurrent_participants: int = Field(default=4, env="MAX_CONCURRENT_PARTICIPANTS")
    # Covers a throttle wait plus the HTTP request itself
    fetch_timeout_seconds: float = Field(default=90.0, env="FETCH_TIMEOUT_SECONDS")
    overrides_apply_to_current: bool = Field(default=False, env="OVERRIDES_APPLY_TO_CURRENT")
    # exclude_position | exclude_participant
    missing_price_policy: str = Field(default="exclude_position", env="MISSING_PRICE_POLICY")

    class Config:
        env_file = ".env"
        extra = "ignore"


class CompetitionSettings(BaseSettings):
    """Fixed competition rules."""
    allocation_per_pick: float = 1000.0
    max_picks: int = 10
    quantity_decimals: int = 4

    class Config:
        env_file = ".env"
        extra = "ignore"


class LogoSettings(BaseSettings):
    """Ticker logo lookups (logo.dev)."""
    logo_dev_api_key: str = Field(default="", env="LOGO_DEV_API_KEY")
    logo_base_url: str = Field(default="https://img.logo.dev/ticker", env="LOGO_BASE_URL")
    cache_ttl_seconds: int = 60 * 60 * 24
    max_entries: int = 500

    class Config:
        env_file = ".env"
        extra = "ignore"


class DatabaseSettings(BaseSettings):
    """Database configuration."""
    db_url: str = Field(default="sqlite+aiosqlite:///pickleague.db", env="DATABASE_URL")
    echo_sql: bool = Field(default=False, env="DB_ECHO_SQL")

    class Config:
        env_file = ".env"
        extra = "ignore"


class AppSettings(BaseSettings):
    """Top-level application settings."""
    app_name: str = "PICK LEAGUE"
    version: str = "1.0.0"
    debug: bool = Field(default=False, env="DEBUG")
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    host: str = Field(default="0.0.0.0", env="HOST")
    port: int = Field(default=8000, env="PORT")

    data: DataSourceSettings = DataSourceSettings()
    cache: CacheSettings = CacheSettings()
    engine: EngineSettings = EngineSettings()
    competition: CompetitionSettings = CompetitionSettings()
    logo: LogoSettings = LogoSettings()
    database: DatabaseSettings = DatabaseSettings()

    class Config:
        env_file = ".env"
        extra = "ignore"


# Singleton
_settings: Optional[AppSettings] = None


def get_settings() -> AppSettings:
    global _settings
    if _settings is None:
        _settings = AppSettings()
    return _settings
