"""Application configuration and settings management."""

from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="ROUTESEQ_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Route Sequencing Engine API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Root logging level.")
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)

    matrix_provider: Literal["osrm", "google"] = Field(
        default="osrm",
        description="Which upstream service supplies travel distance/duration matrices.",
    )
    osrm_base_url: Optional[str] = Field(
        default=None,
        description="Base URL for the OSRM routing service (e.g., http://localhost:5000).",
    )
    osrm_profile: Literal["driving", "driving-hgv"] = Field(
        default="driving",
        description="OSRM profile to use when computing travel times.",
    )
    osrm_max_retries: int = Field(default=3, ge=0)
    osrm_backoff_seconds: float = Field(default=1.0, ge=0.0)
    osrm_max_coordinates_per_request: int = Field(default=80, ge=2)
    osrm_max_parallel_requests: int = Field(default=8, ge=1)

    google_maps_api_key: Optional[str] = Field(
        default=None,
        description="Key for the Google Distance Matrix and Geocoding APIs.",
    )
    google_maps_base_url: str = "https://maps.googleapis.com/maps/api"
    google_maps_max_retries: int = Field(default=2, ge=0)
    google_maps_backoff_seconds: float = Field(default=1.0, ge=0.0)

    matrix_cache_ttl_seconds: int = Field(default=15 * 60, ge=0)
    geocode_cache_ttl_seconds: int = Field(default=60 * 60, ge=0)
    cache_max_entries: int = Field(default=1024, ge=1, description="Upper bound on cached matrices and geocodes.")
    traffic_aware_default: bool = Field(
        default=True,
        description="Request traffic-aware durations when the caller does not say.",
    )

    two_opt_max_passes: int = Field(
        default=100,
        ge=0,
        description="Upper bound on 2-opt improvement passes.",
    )
    prefer_frontier_on_tie: bool = Field(
        default=False,
        description="Recommend the frontier heuristic when both algorithms tie on distance.",
    )

    fuel_cost_per_liter: float = Field(default=1.5, ge=0.0)
    vehicle_consumption_l_per_100km: float = Field(default=10.0, ge=0.0)
    working_days_per_month: int = Field(default=20, ge=0)

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
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
    def _normalise_log_level(cls, value: Any) -> str:
        return str(value or "INFO").strip().upper()


settings = Settings()
