"""
Pathfinder - Configuration and settings.

Remote services (Supabase, OpenAI) are optional. A missing URL or key means
the remote store is treated as absent and the app runs local-cache-only.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class PathfinderSettings(BaseSettings):
    """Application settings loaded from the environment and .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    pathfinder_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    site_url: str = "http://localhost:5173"

    # Supabase (optional)
    supabase_url: str | None = None
    supabase_anon_key: str | None = None

    # OpenAI (optional, only needed for itinerary generation)
    openai_api_key: str | None = None
    openai_model: str = "gpt-4.1-mini"

    # Local cache
    cache_dir: Path = Path(".pathfinder")

    # Timeouts (seconds)
    remote_timeout_seconds: float = 10.0
    profile_fetch_timeout_seconds: float = 1.0  # Hot path, before first render
    auth_timeout_seconds: float = 15.0
    get_session_timeout_seconds: float = 5.0
    sign_out_timeout_seconds: float = 3.0
    logout_timeout_seconds: float = 0.8  # User-initiated logout never waits longer
    session_watchdog_seconds: float = 4.0

    # Community feed
    community_page_size: int = 20

    # Reverse geocoding
    geocode_url: str = "https://nominatim.openstreetmap.org/reverse"

    @property
    def is_development(self) -> bool:
        return self.pathfinder_env == "development"

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)


@lru_cache
def get_settings() -> PathfinderSettings:
    """Get cached settings instance."""
    return PathfinderSettings()


class _SettingsProxy:
    """Lazy proxy for settings to avoid loading .env at import time."""

    _instance: PathfinderSettings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


settings = _SettingsProxy()
