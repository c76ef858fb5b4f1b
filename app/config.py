# =============================================================================
# app/config.py - Application Settings
# =============================================================================
# This module loads configuration from environment variables using pydantic-settings.
# It is the only place the process environment is read. Components never look
# at settings directly; they receive explicit config objects built here:
#
#   settings.geocoding_config()     -> lib.geocoding.GeocodingConfig
#   settings.object_store_config()  -> lib.object_store.ObjectStoreConfig
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

from lib.geocoding import GeocodingConfig
from lib.object_store import BucketPolicy, BucketType, ObjectStoreConfig, MEGABYTE


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses pydantic-settings to:
    - Automatically load from .env file
    - Validate types and constraints
    - Provide sensible defaults for development
    """

    # -------------------------------------------------------------------------
    # Supabase Configuration (Location persistence + auth tokens)
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
        description="Supabase service_role key (bypasses RLS)"
    )

    SUPABASE_JWT_SECRET: str = Field(
        default="dev-jwt-secret-change-in-production",
        description="Secret used to verify HS256 access tokens"
    )

    # -------------------------------------------------------------------------
    # Redis Configuration (for Celery)
    # -------------------------------------------------------------------------

    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL for Celery broker"
    )

    # -------------------------------------------------------------------------
    # Geocoding (Mapbox)
    # -------------------------------------------------------------------------

    MAPBOX_ACCESS_TOKEN: str = Field(
        ...,
        description="Mapbox access token used for forward geocoding"
    )

    MAPBOX_BASE_URL: str = Field(
        default="https://api.mapbox.com",
        description="Base URL of the Mapbox API"
    )

    GEOCODING_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="HTTP timeout for a single geocoding request"
    )

    GEOCODING_COUNTRY: str | None = Field(
        default=None,
        description="Optional ISO country filter (comma-separated, e.g. 'fr,be')"
    )

    GEOCODING_LANGUAGE: str | None = Field(
        default=None,
        description="Optional response language (e.g. 'en')"
    )

    # -------------------------------------------------------------------------
    # Object Store (S3-compatible, e.g. MinIO)
    # -------------------------------------------------------------------------

    OBJECT_STORE_ENDPOINT: str = Field(
        default="localhost",
        description="Host name of the object store (no scheme, no port)"
    )

    OBJECT_STORE_PORT: int | None = Field(
        default=9000,
        ge=1,
        le=65535,
        description="Port of the object store (omit for the scheme default)"
    )

    OBJECT_STORE_USE_SSL: bool = Field(
        default=False,
        description="Use https to talk to the object store"
    )

    OBJECT_STORE_ACCESS_KEY: str = Field(
        default="minioadmin",
        description="Access key of the privileged store client"
    )

    OBJECT_STORE_SECRET_KEY: str = Field(
        default="minioadmin",
        description="Secret key of the privileged store client"
    )

    OBJECT_STORE_REGION: str = Field(
        default="us-east-1",
        description="Region used when creating buckets and signing requests"
    )

    OBJECT_STORE_TIMEOUT_SECONDS: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Connect/read timeout for object store calls"
    )

    LOCATIONS_BUCKET: str = Field(
        default="locations",
        min_length=3,
        max_length=63,
        description="Physical bucket name for location images"
    )

    # This is the only upload ceiling in the system; the HTTP layer reads it
    # from the object store policy instead of keeping its own.
    MAX_IMAGE_SIZE_MB: int = Field(
        default=12,
        ge=1,
        le=100,
        description="Maximum image size in MB"
    )

    # -------------------------------------------------------------------------
    # Orphaned image sweep
    # -------------------------------------------------------------------------

    ORPHAN_SWEEP_INTERVAL_SECONDS: int = Field(
        default=3600,
        ge=60,
        description="How often Celery beat schedules the orphaned image sweep"
    )

    ORPHAN_MIN_AGE_SECONDS: int = Field(
        default=3600,
        ge=60,
        description="Blobs younger than this are never reclaimed (in-flight uploads)"
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

    CORS_ORIGINS: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
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

        Example: "http://localhost:3000, https://myapp.com" -> ["http://localhost:3000", "https://myapp.com"]
        """
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    # -------------------------------------------------------------------------
    # Component Configs
    # -------------------------------------------------------------------------

    def geocoding_config(self) -> GeocodingConfig:
        """Build the explicit config for lib.geocoding.GeocodingClient."""
        return GeocodingConfig(
            access_token=self.MAPBOX_ACCESS_TOKEN,
            base_url=self.MAPBOX_BASE_URL,
            timeout_seconds=self.GEOCODING_TIMEOUT_SECONDS,
            country=self.GEOCODING_COUNTRY,
            language=self.GEOCODING_LANGUAGE,
        )

    def object_store_config(self) -> ObjectStoreConfig:
        """Build the explicit config for lib.object_store.ObjectStore."""
        return ObjectStoreConfig(
            endpoint=self.OBJECT_STORE_ENDPOINT,
            port=self.OBJECT_STORE_PORT,
            use_ssl=self.OBJECT_STORE_USE_SSL,
            access_key=self.OBJECT_STORE_ACCESS_KEY,
            secret_key=self.OBJECT_STORE_SECRET_KEY,
            region=self.OBJECT_STORE_REGION,
            timeout_seconds=self.OBJECT_STORE_TIMEOUT_SECONDS,
            buckets={
                BucketType.LOCATIONS: BucketPolicy(
                    name=self.LOCATIONS_BUCKET,
                    max_size_bytes=self.MAX_IMAGE_SIZE_MB * MEGABYTE,
                ),
            },
        )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Using lru_cache ensures we only parse .env and validate once,
    not on every access.
    """
    return Settings()


# Global settings instance for easy importing
# Usage: from app.config import settings
settings = get_settings()
