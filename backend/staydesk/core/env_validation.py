"""
Runtime Environment Validation Module

This module validates all required environment variables at application startup.
If validation fails, the application will refuse to start (hard fail).

This prevents runtime errors from missing or misconfigured environment variables.
"""

import os
import sys
from typing import Optional

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProductionSettings(BaseSettings):
    """
    Strict validation schema for production environment variables.

    All required fields MUST be present and valid, or the application will not start.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================================================
    # CRITICAL: Database Configuration
    # ========================================================================
    database_url: str  # REQUIRED: PostgreSQL connection string

    # ========================================================================
    # Firebase Authentication
    # ========================================================================
    firebase_project_id: Optional[str] = None
    google_application_credentials: Optional[str] = None  # Path to service account JSON

    # ========================================================================
    # Application Configuration
    # ========================================================================
    app_name: str = "StayDesk"
    debug: bool = False
    api_v1_prefix: str = "/v1"

    # ========================================================================
    # CRITICAL: CORS Configuration
    # ========================================================================
    allowed_origins: str = "http://localhost:3000"  # Comma-separated list of allowed origins

    # ========================================================================
    # Scheduler
    # ========================================================================
    cron_secret: Optional[str] = None

    # ========================================================================
    # iCal sync
    # ========================================================================
    ical_fetch_timeout_seconds: float = 30.0
    ical_cron_retention_days: int = 30
    ical_manual_retention_days: int = 90
    ical_code_max_attempts: int = 10


def _fatal(*lines: str) -> None:
    for line in lines:
        print(line, file=sys.stderr)
    sys.exit(1)


def validate_environment() -> ProductionSettings:
    """
    Validate all required environment variables at startup.

    Called from the application lifespan before requests are served.
    If validation fails, the application will exit with code 1.

    Returns:
        ProductionSettings: Validated settings object

    Raises:
        SystemExit: If validation fails (exit code 1)
    """

    try:
        settings = ProductionSettings()
    except ValidationError as e:
        print("❌ FATAL: Environment validation failed", file=sys.stderr)
        print("\nMissing or invalid environment variables:", file=sys.stderr)
        for error in e.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            msg = error["msg"]
            print(f"   • {field}: {msg}", file=sys.stderr)

        print("\nThe application cannot start with invalid configuration.", file=sys.stderr)
        print("Please check your .env file or environment variables.", file=sys.stderr)
        sys.exit(1)

    # ====================================================================
    # Additional Production-Specific Validation
    # ====================================================================

    # 1. CORS: Ensure wildcard is not used in production
    if not settings.debug:
        origins = [o.strip() for o in settings.allowed_origins.split(",")]
        if "*" in origins:
            _fatal(
                "❌ FATAL: Wildcard CORS origin (*) detected in production mode.",
                "   Set ALLOWED_ORIGINS to specific domains (comma-separated).",
            )

    # 2. Firebase: Validate credentials path exists (if provided)
    if settings.google_application_credentials:
        if not os.path.exists(settings.google_application_credentials):
            _fatal(
                f"❌ FATAL: Firebase credentials file not found: {settings.google_application_credentials}"
            )

    # 3. Database URL: Basic format validation
    if not settings.database_url.startswith("postgresql"):
        _fatal(
            "❌ FATAL: DATABASE_URL must be a PostgreSQL connection string (postgresql:// or postgresql+asyncpg://)"
        )

    # 4. iCal sync: timeouts and retention windows must be positive
    if settings.ical_fetch_timeout_seconds <= 0:
        _fatal("❌ FATAL: ICAL_FETCH_TIMEOUT_SECONDS must be greater than 0")
    if settings.ical_cron_retention_days <= 0 or settings.ical_manual_retention_days <= 0:
        _fatal("❌ FATAL: ICAL_CRON_RETENTION_DAYS and ICAL_MANUAL_RETENTION_DAYS must be greater than 0")
    if settings.ical_code_max_attempts <= 0:
        _fatal("❌ FATAL: ICAL_CODE_MAX_ATTEMPTS must be greater than 0")

    if not settings.cron_secret:
        print("⚠️  CRON_SECRET is not set: /cron/sync-ical is unauthenticated", file=sys.stderr)

    # ====================================================================
    # Success: Log validated configuration
    # ====================================================================
    print("✅ Environment validation passed")
    print(f"   App: {settings.app_name}")
    print(f"   Debug: {settings.debug}")
    print(f"   CORS Origins: {settings.allowed_origins}")
    print(f"   iCal retention: cron={settings.ical_cron_retention_days}d manual={settings.ical_manual_retention_days}d")

    return settings


if __name__ == "__main__":
    # Allow running this module directly to test validation
    validate_environment()
    print("\n✅ All environment variables are valid!")
