"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerConfig(BaseSettings):
    """Featured assets ledger configuration"""

    model_config = SettingsConfigDict(
        env_prefix="FEATURED_ASSETS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Deposit parameters (in units of the reserve currency)
    asset_deposit_base: int = 100
    asset_deposit_per_zombie: int = 1
    metadata_deposit_base: int = 10
    metadata_deposit_per_byte: int = 1

    # Maximum byte length of a metadata name or symbol
    string_limit: int = 50

    # Storage configuration
    database_url: str = "memory://"  # memory:// or sqlite:///path/to.db

    # Privileged origin key for force_* calls over HTTP
    force_origin_key: str = "change-me-in-production"

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout


# Global configuration instance
config = LedgerConfig()


def get_config() -> LedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LedgerConfig:
    """Reload configuration from environment"""
    global config
    config = LedgerConfig()
    return config
