"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class NeoBankConfig(BaseSettings):
    """NeoBank configuration"""

    # Database configuration
    database_path: str = "neobank.db"
    use_sqlite: bool = True

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Security configuration
    jwt_secret: str = "change-me-in-production"
    jwt_issuer: str = "NeoBank"
    jwt_audience: str = "NeoBank.Users"
    jwt_algorithm: str = "HS256"
    jwt_expiry_hours: int = 8
    password_min_length: int = 6

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    # Business rules configuration
    agency_code: str = "0001"
    checking_credit_limit: str = "500.00"
    statement_default_days: int = 30
    account_number_max_attempts: int = 20

    class Config:
        env_prefix = "NEOBANK_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = NeoBankConfig()


def get_config() -> NeoBankConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> NeoBankConfig:
    """Reload configuration from environment"""
    global config
    config = NeoBankConfig()
    return config
