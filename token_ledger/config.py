"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class TokenLedgerConfig(BaseSettings):
    """Token ledger configuration"""

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout
    logger_name: str = "token_ledger"

    # Audit configuration
    audit_max_events: Optional[int] = 100_000  # Oldest records dropped beyond this; None keeps everything

    # Feature flags
    enable_audit_logging: bool = True
    enable_events: bool = True
    verify_invariants: bool = False  # Re-check sum of balances after every mutation

    class Config:
        env_prefix = "TOKEN_LEDGER_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = TokenLedgerConfig()


def get_config() -> TokenLedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> TokenLedgerConfig:
    """Reload configuration from environment"""
    global config
    config = TokenLedgerConfig()
    return config
