"""Configuration management for the order lifecycle engine."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Snapshot store
    store_backend: Literal["redis", "memory"] = Field(
        default="redis", description="Where the order snapshot lives"
    )
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis URL")
    orders_key: str = Field(
        default="sushi_orders", description="Key holding the order snapshot"
    )
    sync_channel: str = Field(
        default="sushi_orders:changed",
        description="Pub/sub channel carrying external-change notifications",
    )

    # Lifecycle timing
    packing_duration_ms: int = Field(
        default=90_000, ge=0, description="Packing window after an order becomes ready"
    )
    sweep_interval_seconds: float = Field(
        default=1.0, gt=0, description="Interval of the packing expiry sweep"
    )
    default_estimated_minutes: int = Field(
        default=15, ge=1, description="ETA used when no cart line reports a prep time"
    )

    # Routing collaborator
    routing_enabled: bool = Field(default=False, description="Resolve routes at creation")
    routing_base_url: str = Field(
        default="https://router.project-osrm.org", description="OSRM-compatible router"
    )
    routing_timeout: float = Field(default=3.0, description="Routing timeout in seconds")
    origin_lat: float = Field(default=-41.46619826299714, ge=-90, le=90)
    origin_lng: float = Field(default=-72.99901571534275, ge=-180, le=180)

    # API Configuration
    api_port: int = Field(default=8000, description="API server port")
    api_host: str = Field(default="0.0.0.0", description="API server host")

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "text"] = Field(default="json", description="Log format")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v_upper


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
