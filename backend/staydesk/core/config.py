"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "StayDesk"
    debug: bool = False
    api_v1_prefix: str = "/v1"
    log_level: str = "INFO"
    allowed_origins: str = "http://localhost:3000"

    # Database
    database_url: str

    # Firebase Auth
    firebase_project_id: Optional[str] = None
    google_application_credentials: Optional[str] = None

    # Cron endpoint shared secret (Authorization: Bearer <secret>)
    cron_secret: Optional[str] = None

    # iCal sync
    ical_user_agent: str = "StayDesk-ICalSync/1.0"
    ical_fetch_timeout_seconds: float = 30.0
    # Events ending further back than this are ignored by the scheduled import
    ical_cron_retention_days: int = 30
    # Same cutoff for operator-triggered syncs (room button, sync-all)
    ical_manual_retention_days: int = 90
    ical_default_guest_name: str = "Imported booking"
    ical_code_max_attempts: int = 10

    # Export feed
    ical_export_timezone: str = "Europe/Rome"


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
