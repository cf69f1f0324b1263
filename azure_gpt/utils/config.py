"""
Configuration management using Pydantic Settings.

This module loads environment variables from .env file and provides
type-safe access to configuration throughout the library.

Environment variables required:
- AZUREOPENAI_API_URL: Azure OpenAI endpoint (full chat completions URL, or
  the resource root when AZUREOPENAI_DEPLOYMENT is set)
- AZUREOPENAI_API_KEY: Azure OpenAI API key

Optional environment variables:
- AZUREOPENAI_DEPLOYMENT: Deployment name appended to the endpoint path
- AZUREOPENAI_API_VERSION: Value of the api-version query parameter
- ENVIRONMENT: development/production/testing (default: development)
- LOG_LEVEL: DEBUG/INFO/WARNING/ERROR (default: INFO)
- LOG_DIR: Directory for rotating log files (default: unset, console only)
- DEFAULT_TEMPERATURE: Default temperature (default: 0.7)
- DEFAULT_MAX_TOKENS: Default max tokens (default: 800)
- DEFAULT_TIMEOUT: HTTP timeout in seconds (default: 30)
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Library settings loaded from environment variables.

    Pydantic will automatically:
    1. Load from .env file
    2. Validate types
    3. Use default values if not set
    """

    # Azure OpenAI identity
    azureopenai_api_url: str = ""
    azureopenai_api_key: str = ""
    azureopenai_deployment: str | None = None
    azureopenai_api_version: str | None = None

    # Environment Configuration
    environment: Literal["development", "production", "testing"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_dir: str | None = None

    # Completion defaults
    default_temperature: float = 0.7
    default_max_tokens: int = 800
    default_timeout: float = 30.0  # seconds

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields in .env
    )


@lru_cache
def get_settings() -> Settings:
    """
    Return the process-wide settings instance.

    Loaded lazily so importing the library never reads the environment.
    Tests can reset it with ``get_settings.cache_clear()``.
    """
    return Settings()


def is_development() -> bool:
    """Check if running in development mode."""
    return get_settings().environment == "development"


def is_production() -> bool:
    """Check if running in production mode."""
    return get_settings().environment == "production"
