"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    allocation_service_url: str = "http://hotel-service"
    allocation_service_token: str | None = None
    allocation_timeout_seconds: float = 5.0
    retry_max_attempts: int = 3
    retry_base_delay_seconds: float = 1.0
    breaker_failure_rate_threshold: float = 0.5
    breaker_window_size: int = 10
    breaker_minimum_calls: int = 5
    breaker_cooldown_seconds: float = 30.0
    booking_timeout_seconds: float = 60.0
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
