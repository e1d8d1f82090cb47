"""
Household Ledger Settings

Everything configurable comes from the environment (or a local .env),
read through pydantic-settings. Each section has its own prefix:

    GOOGLE_SHEETS_*  shared spreadsheet backend
    LEDGER_*         ledger behaviour switches
    (no prefix)      APP_ENVIRONMENT, DEBUG_MODE

Sections load lazily, so the ledger can run in memory without any
Sheets configuration at all.
"""

import warnings
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Where the shared ledger spreadsheet lives and how its tabs are named."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Service account key file (JSON)"
    )
    spreadsheet_id: str = Field(
        ...,
        description="Key of the spreadsheet both partners share"
    )

    # One worksheet per record collection
    users_sheet_name: str = Field(default="Users")
    incomes_sheet_name: str = Field(default="Incomes")
    expenses_sheet_name: str = Field(default="Expenses")
    goals_sheet_name: str = Field(default="Goals")
    households_sheet_name: str = Field(default="Households")

    @field_validator('credentials_path')
    @classmethod
    def check_key_file(cls, v: str) -> str:
        """The key file may be mounted after start-up, so only warn."""
        if not Path(v).exists():
            warnings.warn(
                f"Service account key not found at {v}; "
                "Sheets storage will fail to connect until it is present."
            )
        return v


class LedgerSettings(BaseSettings):
    """
    Ledger behaviour switches.

    household_scoping mirrors the two generations of the product:
    without it there is a single implicit ledger, with it every
    income, expense and goal belongs to the selected household.
    """

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    household_scoping: bool = Field(
        default=True,
        description="Require an active household for income/expense/goal mutations"
    )
    dangling_goal_policy: Literal["warn", "reject"] = Field(
        default="warn",
        description=(
            "What to do with a savings expense whose goal does not exist: "
            "'warn' records it and skips funding, 'reject' refuses it"
        )
    )
    join_code_length: int = Field(
        default=6,
        ge=4,
        le=12,
        description="Length of generated household join codes"
    )
    recent_activity_limit: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Default number of items in the recent activity feed"
    )
    max_amount: Decimal = Field(
        default=Decimal("1000000"),
        gt=0,
        description="Amounts above this are flagged for review (not rejected)"
    )


class AppSettings(BaseSettings):
    """Deployment flags shared by every entry point."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="development, staging or production"
    )
    debug_mode: bool = Field(
        default=False,
        description="Verbose logging and tracebacks"
    )


class Settings(BaseSettings):
    """Entry point to every settings section."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Built on access; a missing Sheets section must not break in-memory use

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


SECTIONS = ("google_sheets", "ledger", "app")


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings; get_settings.cache_clear() forces a reload."""
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Try to load every section.

    Returns {section: loaded_ok}, plus a {section}_error message for
    each section that failed.
    """
    settings = get_settings()
    results = {}

    for name in SECTIONS:
        try:
            getattr(settings, name)
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)
        else:
            results[name] = True

    return results
