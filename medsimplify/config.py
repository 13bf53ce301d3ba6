"""
Configuration management for MedSimplify.

Uses Pydantic Settings for type-safe environment variable handling.
All configuration is loaded from environment variables or .env file.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ==========================================================================
    # Application
    # ==========================================================================
    app_name: str = "MedSimplify"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # ==========================================================================
    # Server
    # ==========================================================================
    host: str = "0.0.0.0"
    port: int = 4000
    cors_origins: str = "*"
    static_dir: str = "public"

    # ==========================================================================
    # LLM Configuration
    # ==========================================================================
    llm_provider: Literal["openai", "gemini"] = "openai"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    llm_temperature: float = 0.2
    llm_max_tokens: int = 800
    llm_timeout_seconds: float = 60.0

    # ==========================================================================
    # Simplification
    # ==========================================================================
    max_input_chars: int = 8000
    response_contract: Literal["text", "json"] = "text"
    degrade_on_upstream_failure: bool = True
    image_hint_url_template: str = "https://source.unsplash.com/featured/?{keyword}"

    # ==========================================================================
    # Rate Limiting
    # ==========================================================================
    rate_limit_window_ms: int = 60000
    rate_limit_max: int = 30

    # ==========================================================================
    # Request Size
    # ==========================================================================
    max_upload_bytes: int = 8 * 1024 * 1024
    max_json_body_bytes: int = 200 * 1024

    # ==========================================================================
    # Computed Properties
    # ==========================================================================
    @property
    def rate_limit(self) -> str:
        """Fixed-window limit in slowapi notation, e.g. '30 per 60 seconds'."""
        # Round partial seconds up so the window is never shorter than configured
        window_seconds = max(1, -(-self.rate_limit_window_ms // 1000))
        return f"{self.rate_limit_max} per {window_seconds} seconds"

    @property
    def cors_origin_list(self) -> list[str]:
        """List of allowed CORS origins."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def static_path(self) -> Path:
        """Path to the static client application."""
        return Path(self.static_dir)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
