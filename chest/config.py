"""
Configuration management for the chest relay ingester.
Settings come from environment variables or a local .env file.
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


DEFAULT_RELAY_URLS = [
    "wss://relay.damus.io",
    "wss://nos.lol",
]

# Metadata, notes, reactions, zaps and long-form articles
DEFAULT_EVENT_KINDS = [0, 1, 7, 9734, 9735, 30023, 30024]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Relays (RELAY_URLS / EVENT_KINDS are JSON lists in the environment)
    relay_urls: List[str] = Field(default_factory=lambda: list(DEFAULT_RELAY_URLS), alias="RELAY_URLS")
    event_kinds: List[int] = Field(default_factory=lambda: list(DEFAULT_EVENT_KINDS), alias="EVENT_KINDS")

    # Ingestion behaviour
    dynamic_expansion: bool = Field(default=True, alias="DYNAMIC_EXPANSION")
    per_kind_filters: bool = Field(default=True, alias="PER_KIND_FILTERS")
    max_secondary_sessions: int = Field(default=256, ge=1, alias="MAX_SECONDARY_SESSIONS")

    # Connection handling
    connect_timeout: float = Field(default=10.0, gt=0, alias="CONNECT_TIMEOUT")
    heartbeat: float = Field(default=30.0, gt=0, alias="WS_HEARTBEAT")
    reconnect_enabled: bool = Field(default=True, alias="RECONNECT_ENABLED")
    reconnect_base_delay: float = Field(default=1.0, ge=0, alias="RECONNECT_BASE_DELAY")
    reconnect_max_delay: float = Field(default=60.0, ge=0, alias="RECONNECT_MAX_DELAY")
    reconnect_max_attempts: int = Field(default=0, ge=0, alias="RECONNECT_MAX_ATTEMPTS")  # 0 = unlimited

    # Database
    database_url: str = Field(default="sqlite:///./events.db", alias="DATABASE_URL")

    # HTTP read API
    bind_host: str = Field(default="127.0.0.1", alias="BIND_HOST")
    bind_port: int = Field(default=8080, alias="BIND_PORT")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        populate_by_name = True

    @field_validator("relay_urls")
    @classmethod
    def check_relay_urls(cls, v):
        for url in v:
            if not url.startswith(("ws://", "wss://")):
                raise ValueError(f"relay url must use ws:// or wss://, got {url!r}")
        return v

    @field_validator("event_kinds")
    @classmethod
    def check_event_kinds(cls, v):
        if not v:
            raise ValueError("EVENT_KINDS must list at least one kind")
        if any(k < 0 for k in v):
            raise ValueError(f"event kinds must be non-negative, got {v}")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v):
        return str(v).upper()

    @model_validator(mode="after")
    def check_backoff(self):
        if self.reconnect_max_delay < self.reconnect_base_delay:
            raise ValueError("RECONNECT_MAX_DELAY must be >= RECONNECT_BASE_DELAY")
        return self

    def public_view(self) -> dict:
        """Settings safe to expose over the read API."""
        return {
            "relay_urls": self.relay_urls,
            "event_kinds": self.event_kinds,
            "dynamic_expansion": self.dynamic_expansion,
            "per_kind_filters": self.per_kind_filters,
            "max_secondary_sessions": self.max_secondary_sessions,
            "reconnect_enabled": self.reconnect_enabled,
        }


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
