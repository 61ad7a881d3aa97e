"""Database configuration and schema management.

Usage:
    from datablase.database import DatabaseConfig, create_schema

    config = DatabaseConfig.from_env()
    create_schema(config)
"""

from datablase.database.config import DatabaseConfig
from datablase.database.session import create_schema, dispose_engines, get_engine

__all__ = [
    "DatabaseConfig",
    "create_schema",
    "dispose_engines",
    "get_engine",
]
