"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_key: str
    feed_page_size: int = 20
    profile_page_size: int = 20
    leaderboard_page_size: int = 50
    sync_debounce_seconds: float = 0.15
    realtime_confirm_timeout_seconds: float = 10.0
    following_cache_ttl_seconds: int = 60
    search_profile_limit: int = 5
    search_catch_limit: int = 5
    search_venue_limit: int = 10
    store_retry_attempts: int = 2
    store_retry_delay_seconds: float = 0.3
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
