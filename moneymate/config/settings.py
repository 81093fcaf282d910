"""
Configuration Management for MoneyMate

Every tunable is read from the environment (or .env) through pydantic-settings.

DESIGN DECISION: One place for every knob.
Ledger limits, storage backend selection and session policy are all
validated at startup instead of being scattered as constants.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets key-value storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )
    kv_sheet_name: str = Field(
        default="KeyValue",
        description="Name of the worksheet holding key/value rows"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """A missing key file only warns; the sheets backend falls back to memory."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "The google_sheets backend will not connect without it."
            )
        return v


class AppSettings(BaseSettings):
    """
    Ledger, storage and session settings.

    Read from environment variables, then the .env file.
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

    # Ledger
    history_limit: int = Field(
        default=20,
        ge=2,
        le=500,
        description="Number of ledger snapshots kept for undo/redo"
    )
    page_size: int = Field(
        default=10,
        ge=1,
        le=200,
        description="Transactions per page in list views"
    )
    budget_warning_threshold: float = Field(
        default=80.0,
        gt=0.0,
        lt=100.0,
        description="Percentage of a budget at which a warning is raised"
    )
    recurring_check_interval_hours: int = Field(
        default=24,
        ge=1,
        description="Minimum hours between two recurring-transaction runs"
    )

    # Storage
    storage_backend: Literal["memory", "json", "google_sheets"] = Field(
        default="json",
        description="Which key-value backend to use"
    )
    data_file: str = Field(
        default="data/moneymate.json",
        description="Path of the JSON file used by the json backend"
    )
    storage_prefix: str = Field(
        default="finance_tracker_",
        description="Prefix applied to every storage key"
    )

    # Sessions
    remember_me_days: int = Field(
        default=30,
        ge=1,
        le=365,
        description="How long a remember-me login stays valid"
    )
    min_password_length: int = Field(
        default=6,
        ge=1,
        description="Minimum password length on registration"
    )

    @property
    def data_path(self) -> Path:
        """Get the JSON data file as a Path."""
        return Path(self.data_file)


class Settings(BaseSettings):
    """
    Root settings container.

    Groups the settings sections.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sections load on access, so a missing sheets config only fails that section

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Process-wide settings.

    Built once; tests that change the environment
    call get_settings.cache_clear() first.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Try loading every settings section.

    Returns {section: loaded_ok} plus an "<section>_error" message per failure.
    Shown on the Import/Export page as the connection status.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    try:
        _ = settings.google_sheets
        results["google_sheets"] = True
    except Exception as e:
        results["google_sheets"] = False
        results["google_sheets_error"] = str(e)

    return results
