# =============================================================================
# app/config.py - Application Settings
# =============================================================================
# This module loads configuration from environment variables using pydantic-settings.
# It provides a single Settings class with all configuration values.
#
# Usage:
#   from app.config import settings
#   print(settings.SUPABASE_URL)
#
# Environment variables are loaded from:
# 1. System environment variables
# 2. .env file in project root (if exists)
# =============================================================================

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings are accessed via the global `settings` instance.
    """

    # -------------------------------------------------------------------------
    # Supabase Configuration
    # -------------------------------------------------------------------------

    SUPABASE_URL: str = Field(
        ...,
        description="Supabase project URL (e.g., https://xxx.supabase.co)"
    )

    SUPABASE_ANON_KEY: str = Field(
        ...,
        description="Supabase anon/public API key"
    )

    SUPABASE_SERVICE_KEY: str = Field(
        ...,
        description="Supabase service_role key (bypasses RLS, server side only)"
    )

    SUPABASE_JWT_SECRET: str = Field(
        default="",
        description="Legacy HS256 JWT secret used to verify Supabase access tokens"
    )

    # -------------------------------------------------------------------------
    # Redis Configuration (for Celery)
    # -------------------------------------------------------------------------

    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL for Celery broker"
    )

    # -------------------------------------------------------------------------
    # Email (Resend)
    # -------------------------------------------------------------------------

    RESEND_API_KEY: str = Field(
        default="",
        description="Resend API key; empty disables outbound email"
    )

    EMAIL_FROM: str = Field(
        default="Gia Phả Điện Tử <noreply@giaphadientu.vn>",
        description="Sender address for transactional email"
    )

    APP_URL: str = Field(
        default="https://giaphadientu.vn",
        description="Public site URL used for links inside emails"
    )

    NOTIFICATIONS_ENABLED: bool = Field(
        default=True,
        description="Dispatch admin notification tasks after a contribution is submitted"
    )

    # -------------------------------------------------------------------------
    # Scheduled Jobs
    # -------------------------------------------------------------------------

    CRON_SECRET: str = Field(
        default="",
        description="Bearer secret expected by /cron/* endpoints; empty rejects all callers"
    )

    LOCAL_UTC_OFFSET_HOURS: int = Field(
        default=7,
        ge=-12,
        le=14,
        description="Clan's local timezone offset used for birthday dates (Vietnam = UTC+7)"
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Current environment"
    )

    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (verbose logging, auto-reload)"
    )

    API_HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the API server to"
    )

    API_PORT: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port for the API server"
    )

    USE_IN_MEMORY_BACKENDS: bool = Field(
        default=False,
        description="Serve from in-memory tables, storage and mailbox instead of Supabase/Resend"
    )

    # CORS origins (comma-separated string that gets parsed)
    CORS_ORIGINS: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    # -------------------------------------------------------------------------
    # Registration Gate
    # -------------------------------------------------------------------------

    QUIZ_QUESTION_COUNT: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Number of verification questions served to a registrant"
    )

    # -------------------------------------------------------------------------
    # Media Upload Settings
    # -------------------------------------------------------------------------
    # app_settings rows (media_upload_limit, media_max_image_size_mb) override
    # these at request time.

    MEDIA_BUCKET: str = Field(
        default="media",
        description="Supabase Storage bucket for media uploads"
    )

    MEDIA_UPLOAD_LIMIT: int = Field(
        default=5,
        ge=0,
        description="Max PENDING+PUBLISHED uploads per member"
    )

    MEDIA_MAX_IMAGE_SIZE_MB: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum image upload size in MB"
    )

    MEDIA_MAX_DOCUMENT_SIZE_MB: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Maximum document (PDF) upload size in MB"
    )

    # -------------------------------------------------------------------------
    # Admin Surface
    # -------------------------------------------------------------------------

    PAGE_SIZE: int = Field(
        default=20,
        ge=1,
        le=200,
        description="Rows per page for admin listings (audit log, bug reports, contributions)"
    )

    RESTORE_CHUNK_SIZE: int = Field(
        default=500,
        ge=1,
        le=5000,
        description="Rows per upsert batch during backup restore"
    )

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=True,
    )

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def cors_origins_list(self) -> list[str]:
        """
        Parse CORS_ORIGINS string into a list.

        Example: "http://localhost:3000, https://giaphadientu.vn" -> ["http://localhost:3000", "https://giaphadientu.vn"]
        """
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def email_enabled(self) -> bool:
        """True when a Resend key is configured."""
        return bool(self.RESEND_API_KEY)

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Using lru_cache ensures we only parse .env and validate once,
    not on every access.

    Returns:
        Settings: The application settings instance
    """
    return Settings()


# Global settings instance for easy importing
# Usage: from app.config import settings
settings = get_settings()
