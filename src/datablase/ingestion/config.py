"""Ingestion configuration models using Pydantic."""

from enum import Enum
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

BASE_URL = "https://www.blaseball.com"


class BackoffStrategy(str, Enum):
    """Retry backoff strategies."""

    EXPONENTIAL = "exponential"
    CONSTANT = "constant"


class RetryConfig(BaseModel):
    """Connection-level retry configuration for HTTP requests."""

    max_attempts: int = Field(default=3, ge=1, le=10)
    backoff: BackoffStrategy = BackoffStrategy.EXPONENTIAL
    initial_delay: float = Field(default=1.0, ge=0)  # seconds
    max_delay: float = Field(default=10.0, ge=0)  # seconds


class EndpointConfig(BaseModel):
    """Feed and poll endpoints."""

    stream_url: str = f"{BASE_URL}/events/streamData"
    idols_url: str = f"{BASE_URL}/api/getIdols"
    players_url: str = f"{BASE_URL}/database/players"
    tributes_url: Optional[str] = f"{BASE_URL}/api/getTribute"
    global_events_url: Optional[str] = f"{BASE_URL}/database/globalEvents"
    script_urls: list[str] = Field(default_factory=list)


class ScheduleConfig(BaseModel):
    """Wall-clock alignment of the poll workers."""

    idols_period_seconds: int = Field(default=60, ge=1)
    players_period_seconds: int = Field(default=300, ge=1)
    roster_wait_seconds: float = Field(default=1.0, gt=0)
    reconnect_delay_seconds: float = Field(default=5.0, ge=0)

    @field_validator("idols_period_seconds", "players_period_seconds")
    @classmethod
    def validate_period(cls, v: int) -> int:
        """Periods must tile a day so boundaries are stable across midnight."""
        if 86400 % v != 0:
            raise ValueError(f"period {v}s does not divide a day evenly")
        return v


class IngestionConfig(BaseModel):
    """HTTP behaviour of the feed client."""

    timeout: float = Field(default=30.0, gt=0, le=300, description="Request timeout in seconds")
    retry: RetryConfig = Field(default_factory=RetryConfig)
    player_chunk_size: int = Field(default=100, ge=1, le=100)
    user_agent: str = "datablase-ingest"


class IngestConfig(BaseModel):
    """Complete ingestion daemon configuration."""

    endpoints: EndpointConfig = Field(default_factory=EndpointConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    storage: Literal["postgres", "memory"] = "postgres"


def load_ingest_config(path: Optional[str | Path] = None) -> IngestConfig:
    """Load ingestion configuration from a YAML file.

    Args:
        path: Path to YAML configuration file (defaults when None)

    Returns:
        Validated IngestConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
    """
    if path is None:
        return IngestConfig()

    config_path = Path(path)

    if not config_path.exists():
        raise FileNotFoundError(f"Ingest config not found: {config_path}")

    with open(config_path) as f:
        config_data = yaml.safe_load(f) or {}

    return IngestConfig(**config_data)
