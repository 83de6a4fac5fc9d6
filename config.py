"""
Configuration management for the asset ledger.
Uses pydantic-settings for type-safe, centralized configuration.
"""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Uses pydantic-settings for validation and type safety.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore'
    )

    # Database
    database_url: str = "sqlite:///asset_ledger.db"
    db_echo: bool = False

    # Logging
    log_level: str = "INFO"

    # Quote sources
    default_market_type: str = "JP"  # suffix rule for stock codes, see normalize_symbol
    rakuten_app_id: Optional[str] = None
    rakuten_endpoint: str = "https://app.rakuten.co.jp/services/api/IchibaItem/Search/20170706"
    quote_timeout_seconds: float = 10.0
    quote_retry_attempts: int = 3

    @property
    def is_rakuten_configured(self) -> bool:
        """Check if the Rakuten product search has an application id."""
        return bool(self.rakuten_app_id)


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from environment (useful for testing)."""
    global _settings
    _settings = Settings()
    return _settings
