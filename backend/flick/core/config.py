from functools import lru_cache
from typing import ClassVar
from urllib.parse import urlparse

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOCAL_HOSTNAMES = frozenset({"localhost", "127.0.0.1", "0.0.0.0"})


def _check_production_origin(origin: str) -> None:
    """Reject origins the mobile app and web gallery never use in production."""
    if origin == "*":
        raise ValueError(
            "Wildcard (*) CORS origin is not allowed in production. "
            "Specify exact origins instead."
        )
    try:
        hostname = urlparse(origin).hostname or ""
    except ValueError:
        hostname = origin
    if hostname in LOCAL_HOSTNAMES:
        raise ValueError(
            f"CORS origin '{origin}' points at {hostname}, which is not allowed in production."
        )


class Settings(BaseSettings):
    """Flick API configuration, read from the environment and .env."""

    # Must be non-empty or Settings() raises
    REQUIRED_SECRETS: ClassVar[list[str]] = [
        "supabase_url",
        "supabase_anon_key",
        "supabase_service_role_key",
    ]

    # development | staging | production
    environment: str = "development"

    # App
    app_name: str = "Flick API"
    debug: bool = False
    api_prefix: str = "/api/v1"

    # CORS
    cors_origins: list[str] = ["http://localhost:8081"]

    # Supabase
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""

    # Redis (HTTP rate limit storage + reaction history)
    redis_url: str = "redis://localhost:6379"
    redis_max_connections: int = 10
    redis_connect_attempts: int = 3
    redis_retry_base_delay_seconds: float = 1.0
    reaction_storage_prefix: str = "user_reactions"
    reaction_state_max_players: int = 10_000

    # Push delivery (Expo)
    expo_push_url: str = "https://exp.host/--/api/v2/push/send"
    push_timeout_seconds: float = 10.0

    # Reaction notification batching
    reaction_batch_window_seconds: float = 120.0

    # Client action throttling (max requests per window)
    upload_rate_max_requests: int = 5
    upload_rate_window_ms: int = 60_000
    reaction_rate_max_requests: int = 30
    reaction_rate_window_ms: int = 60_000
    notification_rate_max_requests: int = 10
    notification_rate_window_ms: int = 60_000

    # HTTP rate limiting
    rate_limit_enabled: bool = True

    # PostHog
    posthog_enabled: bool = True
    posthog_api_key: str = ""
    posthog_host: str = "https://us.i.posthog.com"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    @model_validator(mode="after")
    def validate_required_secrets(self) -> "Settings":
        """Fail fast at startup when Supabase credentials are unset."""
        missing = [
            name.upper()
            for name in self.REQUIRED_SECRETS
            if not str(getattr(self, name, "") or "").strip()
        ]
        if missing:
            raise ValueError(
                f"Missing required secrets: {', '.join(missing)}. "
                "Set these environment variables before starting the application."
            )
        return self

    @model_validator(mode="after")
    def validate_cors_origins_in_production(self) -> "Settings":
        if self.environment == "production":
            for origin in self.cors_origins:
                _check_production_origin(origin)
        return self

    def rate_limit_preset(self, kind: str) -> tuple[int, int]:
        """Return (max_requests, window_ms) for an action kind."""
        return (
            getattr(self, f"{kind}_rate_max_requests"),
            getattr(self, f"{kind}_rate_window_ms"),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
