"""
Configuration Management for Invoice Splitter

Typed settings read from environment variables and .env via pydantic-settings.

DESIGN DECISION: Every external dependency (Google Sheets, Gemini) and
every ledger constant that users may tune is declared in this module.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from invoice_splitter.models.ledger import PersonKey, PersonProfile


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets remote backup configuration."""

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

    # Sheet names within the spreadsheet
    backup_sheet_name: str = Field(
        default="Backup",
        description="Name of the sheet holding the serialized process collection"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running a cloud backup."
            )
        return v


class GeminiSettings(BaseSettings):
    """Gemini extraction model configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.5-pro",
        description="Gemini model used to read invoices"
    )
    max_tokens: int = Field(
        default=8192,
        ge=512,
        le=65536,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class LedgerSettings(BaseSettings):
    """
    Ledger settings: the two participants and local persistence.

    Read from LEDGER_* variables.
    """

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Participants
    person_a_name: str = Field(default="Person A", min_length=1)
    person_a_color: str = Field(default="#3b82f6")
    person_b_name: str = Field(default="Person B", min_length=1)
    person_b_color: str = Field(default="#ec4899")

    currency_symbol: str = Field(
        default="R$",
        description="Currency symbol used in user-facing messages"
    )

    # Local persistence
    local_storage_path: str = Field(
        default="data/processes.json",
        description="Where the process collection is kept on this device"
    )
    local_storage_quota_bytes: int = Field(
        default=5 * 1024 * 1024,
        ge=1024,
        description="Capacity of the local store; writes above it are refused"
    )

    # Extraction validation
    max_upload_size_mb: int = Field(
        default=20,
        ge=1,
        le=100,
        description="Maximum invoice document size in MB"
    )
    future_date_tolerance_days: int = Field(
        default=45,
        description="How many days in the future a transaction date can be"
    )

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024

    def people(self) -> dict[PersonKey, PersonProfile]:
        """Display profiles of both participants, keyed by person."""
        return {
            PersonKey.PERSON_A: PersonProfile(
                key=PersonKey.PERSON_A,
                name=self.person_a_name,
                color=self.person_a_color,
            ),
            PersonKey.PERSON_B: PersonProfile(
                key=PersonKey.PERSON_B,
                name=self.person_b_name,
                color=self.person_b_color,
            ),
        }


class Settings(BaseSettings):
    """
    Entry point to the settings groups.

    Each group is built on access so a missing Gemini key does not
    prevent offline use of the ledger.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings root. Tests call get_settings.cache_clear() after
    changing the environment.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Try to build every settings group.

    Returns a dict of {setting_name: is_valid}, plus
    `<name>_error` entries for the groups that failed.
    """
    results = {}
    settings = get_settings()

    for name in ("google_sheets", "gemini", "ledger"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
