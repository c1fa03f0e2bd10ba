"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
Engine tunables (windows, time zone, rounding) live here so every
computation reads the same values.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Every field has a default, so the engine runs without any configuration.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # DATA SOURCE
    # ===================
    sheets_api_url: Optional[str] = Field(
        None,
        description="Spreadsheet-backed web API serving the snapshot collections"
    )
    sheets_timeout_seconds: int = Field(
        default=30,
        ge=1,
        le=300,
        description="Timeout for a single collection fetch"
    )

    # ===================
    # DATE HANDLING
    # ===================
    reference_timezone: str = Field(
        default="UTC",
        description="IANA time zone all calendar dates are resolved in"
    )

    # ===================
    # RECONCILIATION
    # ===================
    sales_window_days: int = Field(
        default=90,
        ge=7,
        le=365,
        description="Trailing window for sales_90d and weekly sales"
    )
    weekly_sales_slots: int = Field(
        default=13,
        ge=1,
        le=52,
        description="Number of weekly buckets in the sales sparkline"
    )

    # ===================
    # TRENDS
    # ===================
    monthly_window: int = Field(
        default=24,
        ge=1,
        description="Most recent monthly buckets kept"
    )
    quarterly_window: int = Field(
        default=12,
        ge=1,
        description="Most recent quarterly buckets kept"
    )
    yearly_window: int = Field(
        default=10,
        ge=1,
        description="Most recent yearly buckets kept"
    )
    moving_average_period: int = Field(
        default=3,
        ge=1,
        description="Default trailing period for moving averages"
    )
    moving_average_places: int = Field(
        default=0,
        ge=0,
        le=6,
        description="Decimal places moving averages are rounded to (half-up)"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Dashboard origins allowed by CORS"
    )

    @field_validator("reference_timezone")
    @classmethod
    def known_timezone(cls, v: str) -> str:
        """Reject time zone names the tz database does not know."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown time zone: {v}")
        return v

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def sheets_configured(self) -> bool:
        """Check if the snapshot data source is configured."""
        return bool(self.sheets_api_url)

    @property
    def tz(self) -> ZoneInfo:
        """Reference time zone as a tzinfo."""
        return ZoneInfo(self.reference_timezone)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If env vars are invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
