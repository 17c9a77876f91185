"""
Configuration Management for Family Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The recommendation thresholds live here too, so a household can tune
how chatty the insights are without touching engine code.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Thresholds used by the recommendation engine."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_ENGINE_",
        extra="ignore"
    )

    spending_ratio_warning: float = Field(
        default=0.8,
        gt=0.0,
        description="Warn when expenses exceed this share of income"
    )
    category_limit_headroom: float = Field(
        default=1.1,
        ge=1.0,
        description="Multiplier applied to actual spend when suggesting a new category limit"
    )
    subcategory_concentration: float = Field(
        default=0.8,
        gt=0.0,
        le=1.0,
        description="Share of a parent category's spend that triggers a per-subcategory hint"
    )
    savings_share_of_income: float = Field(
        default=0.2,
        gt=0.0,
        le=1.0,
        description="Monthly goal contributions above this share of income are flagged"
    )
    discretionary_share_of_income: float = Field(
        default=0.3,
        gt=0.0,
        le=1.0,
        description="Discretionary spend above this share of income is flagged"
    )
    chronic_overage_ratio: float = Field(
        default=1.2,
        ge=1.0,
        description="Categories above limit * ratio are listed for adjustment"
    )
    discretionary_category_names: str = Field(
        default="entertainment,dining,shopping",
        description="Comma-separated category names treated as discretionary"
    )

    @property
    def discretionary_names_list(self) -> list[str]:
        """Get discretionary category names as a lowercase list."""
        return [
            name.strip().lower()
            for name in self.discretionary_category_names.split(",")
            if name.strip()
        ]


class StorageSettings(BaseSettings):
    """Ledger store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_STORAGE_",
        extra="ignore"
    )

    path: str = Field(
        default="ledger.json",
        description="Path of the JSON file holding the ledger snapshot"
    )

    @field_validator('path')
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Parent directory must exist; the file itself is created on first save."""
        parent = Path(v).expanduser().parent
        if not parent.exists():
            raise ValueError(f"Ledger directory does not exist: {parent}")
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for structured logs"
    )

    # Ledger behaviour
    currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="ISO currency code used when formatting amounts"
    )
    recurring_interval_seconds: int = Field(
        default=3600,
        ge=1,
        description="How often recurring rules are caught up (hourly by default)"
    )

    # Import limits
    max_import_amount: float = Field(
        default=1000000.0,
        gt=0,
        description="Largest absolute amount accepted in a bulk import row"
    )

    @field_validator('currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.upper()


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def engine(self) -> EngineSettings:
        return EngineSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus "<name>_error"
    entries describing each failure. Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("engine", "storage", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
