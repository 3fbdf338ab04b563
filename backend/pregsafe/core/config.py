"""Application configuration using pydantic-settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Pregnancy Medication Safety"
    debug: bool = False
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000
    show_disclaimer: bool = True

    # Reference data
    medication_fixture_path: Path | None = None

    # Audit trail (7-year retention for medication decisions)
    audit_enabled: bool = True
    audit_log_path: Path = Path("data") / "pregnancy-audit-log.json"
    audit_retention_years: int = Field(7, ge=1)

    # Assessment cache
    cache_enabled: bool = True
    cache_ttl_seconds: int = Field(3600, ge=0)
    cache_max_entries: int = Field(1024, ge=1)


settings = Settings()
