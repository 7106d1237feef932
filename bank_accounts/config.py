"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class AccountServiceConfig(BaseSettings):
    """Bank account service configuration"""

    model_config = SettingsConfigDict(
        env_prefix="ACCOUNTS_",
        env_file=".env",
        case_sensitive=False,
    )

    # Storage configuration
    storage_type: str = "memory"  # memory, sqlite or postgresql
    database_url: Optional[str] = None  # SQLite path or PostgreSQL DSN
    database_pool_size: int = 10
    accounts_table: str = "bank_accounts"

    # Customer service configuration
    customer_service_url: str = "http://localhost:8085"
    customer_service_timeout: float = 5.0
    customer_service_api_key: str = ""

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    # Business rules configuration
    # Store-level guard against concurrent duplicate personal accounts
    enforce_unique_personal_accounts: bool = True


# Global configuration instance
config = AccountServiceConfig()


def get_config() -> AccountServiceConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> AccountServiceConfig:
    """Reload configuration from environment"""
    global config
    config = AccountServiceConfig()
    return config
