"""Configuration management using Pydantic Settings.

Priority order:
1. Environment variables (highest priority, for Cloud Run)
2. .env file (for local development fallback)

The only credential is the Google service account used for Vertex AI. When
``SERVICE_ACCOUNT_FILE`` is not set, application default credentials apply.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Configuration is loaded from:
    1. Environment variables (highest priority)
    2. .env file (local development fallback)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Google Cloud
    google_project_id: str
    google_location: str = "global"
    service_account_file: str | None = None

    # Logging
    log_level: str = "INFO"

    # Streamlit front end -> API
    api_url: str = "http://localhost:8000"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Default settings instance
settings = get_settings()
