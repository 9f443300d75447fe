"""Application configuration and settings management."""

from typing import Any

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="SLOTBOOK_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Slotbook Scheduling API"
    api_prefix: str = "/api"
    database_url: str = Field(
        default="sqlite:///data/slotbook.db",
        description="SQLAlchemy database URL (SQLite file or PostgreSQL).",
    )
    db_timeout_seconds: float = Field(
        default=3.0,
        gt=0.0,
        description="Lock/statement timeout applied to every unit of work.",
    )
    echo_sql: bool = Field(default=False)
    timezone: str = Field(default="UTC", description="IANA timezone used to interpret slot dates and times.")
    default_horizon_days: int = Field(default=7, ge=1, description="Recommendation window when no date range is given.")
    proximity_max_distance_km: float = Field(default=10.0, gt=0.0)
    route_max_distance_km: float = Field(default=20.0, gt=0.0)
    route_time_window_minutes: int = Field(default=120, ge=0)
    radius_zone_fail_open: bool = Field(
        default=False,
        description="Treat customers without coordinates as inside radius zones.",
    )
    log_level: str = Field(default="INFO")
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ),
        description="Permitted web origins for storefront widgets (CORS).",
    )

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: Any) -> str:
        return str(value or "INFO").strip().upper()


settings = Settings()
