"""Ingestion layer: HTTP access to the feed and its configuration.

Provides:
- FeedClient: httpx wrapper with connection-level retries and line streaming
- IngestConfig: Configuration models for the ingestion daemon
"""

from .client import FeedClient
from .config import IngestConfig, IngestionConfig, load_ingest_config

__all__ = [
    "FeedClient",
    "IngestConfig",
    "IngestionConfig",
    "load_ingest_config",
]
