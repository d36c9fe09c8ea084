"""Configuration models and YAML loader for the recommendation engine."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "data/dispatch.db"


class AvailabilityConfig(BaseModel):
    """Minimum gap required between adjacent jobs."""

    buffer_time_minutes: int = Field(default=15, ge=0)


class RecommendationConfig(BaseModel):
    """Ranking and fan-out limits for a recommendation request."""

    max_recommendations: int = Field(default=5, ge=1)
    default_job_duration_hours: float = Field(default=8.0, gt=0.0)
    max_concurrency: int = Field(default=10, ge=1)
    timeout_seconds: float = Field(default=30.0, gt=0.0)


class DistanceConfig(BaseModel):
    """Distance Matrix client and cache settings.

    An empty api_key selects the offline haversine provider.
    """

    api_key: str = ""
    base_url: str = "https://maps.googleapis.com/maps/api/distancematrix/json"
    max_retries: int = Field(default=3, ge=1, le=10)
    initial_delay_ms: int = Field(default=100, ge=0)
    request_timeout_seconds: float = Field(default=10.0, gt=0.0)
    cache_enabled: bool = True
    cache_ttl_hours: int = Field(default=24, ge=1)

    @field_validator("api_key")
    @classmethod
    def api_key_stripped(cls, v: str) -> str:
        return v.strip()


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    availability: AvailabilityConfig = Field(default_factory=AvailabilityConfig)
    recommendations: RecommendationConfig = Field(default_factory=RecommendationConfig)
    distance: DistanceConfig = Field(default_factory=DistanceConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
