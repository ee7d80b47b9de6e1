"""
Configuration management for the trading journal.
Uses pydantic-settings for type-safe, centralized configuration.
"""

from decimal import Decimal
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
        extra='ignore'  # Allow extra fields in .env for flexibility
    )

    # Database
    database_url: str = "sqlite:///trading_journal.db"
    db_echo: bool = False
    sqlite_busy_timeout_ms: int = 5000  # How long a writer waits for the lock

    # Tax estimation (capital gains)
    capital_gains_tax_rate: Decimal = Decimal("0.22")
    capital_gains_basic_deduction: Decimal = Decimal("2500000")
    long_term_holding_days: int = 365

    # Dividends
    dividend_tax_rate: Decimal = Decimal("15.4")  # Percent withheld

    # Email / SMTP Configuration
    smtp_server: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    from_email: Optional[str] = None
    smtp_timeout_seconds: int = 30

    # Price alert monitor
    alert_check_days: str = "mon-fri"
    alert_check_hours: str = "9-16"

    log_level: str = "INFO"

    @property
    def email_from(self) -> Optional[str]:
        """Get the from email address, defaulting to smtp_username."""
        return self.from_email or self.smtp_username

    @property
    def is_email_configured(self) -> bool:
        """Check if email service is properly configured."""
        return all([
            self.smtp_username,
            self.smtp_password,
            self.email_from
        ])

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


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
