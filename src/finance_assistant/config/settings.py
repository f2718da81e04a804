"""
Configuration Management for Finance Assistant

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all configuration is validated at startup.

NOTE: The Gemini API key is deliberately optional here. A missing key is
reported by the gateway client as a ConfigurationError at call time,
before any request leaves the process, so the rest of the app (context
aggregation, normalization) keeps working without it.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini generative-AI gateway configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        default="",
        description="Gemini API key (blank means not configured)"
    )
    base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the generateContent REST API"
    )
    model_name: str = Field(
        default="gemini-2.0-flash-001",
        description="Gemini model to use"
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="HTTP timeout for a single gateway call"
    )

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def is_configured(self) -> bool:
        """True when an API key is present."""
        return bool(self.api_key.strip())


class BackendSettings(BaseSettings):
    """Backend REST API (balance, transactions, categories, profile)."""

    model_config = SettingsConfigDict(
        env_prefix="BACKEND_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    base_url: str = Field(
        default="http://localhost:3000/api/v1",
        description="Base URL of the backend API"
    )
    auth_token: Optional[str] = Field(
        default=None,
        description="Bearer token for the current user"
    )
    timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        le=120,
        description="HTTP timeout for a single backend call"
    )

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class AssistantSettings(BaseSettings):
    """
    Assistant behaviour settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="ASSISTANT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    debug_mode: bool = Field(
        default=False,
        description="Enable debug logging"
    )

    # Context aggregation
    recent_transactions_limit: int = Field(
        default=30,
        ge=1,
        le=200,
        description="How many recent transactions go into the context"
    )
    source_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Deadline for each context source (None = HTTP timeout only)"
    )

    # Rendering
    date_display_format: str = Field(
        default="%d/%m/%Y",
        description="strftime format for dates shown to the assistant"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def backend(self) -> BackendSettings:
        return BackendSettings()

    @property
    def assistant(self) -> AssistantSettings:
        return AssistantSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool | str]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    `<name>_error` entries describing what went wrong.
    Useful for startup checks.
    """
    results: dict[str, bool | str] = {}

    settings = get_settings()

    try:
        gemini = settings.gemini
        results["gemini"] = gemini.is_configured
        if not gemini.is_configured:
            results["gemini_error"] = "GEMINI_API_KEY is not set"
    except Exception as e:
        results["gemini"] = False
        results["gemini_error"] = str(e)

    try:
        _ = settings.backend
        results["backend"] = True
    except Exception as e:
        results["backend"] = False
        results["backend_error"] = str(e)

    try:
        _ = settings.assistant
        results["assistant"] = True
    except Exception as e:
        results["assistant"] = False
        results["assistant_error"] = str(e)

    return results
