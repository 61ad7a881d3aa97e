"""Engine management and schema creation.

The runtime merge path talks to PostgreSQL through psycopg directly
(see datablase.storage.postgres); SQLAlchemy is used for DDL only.
"""

import logging
from typing import Optional

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from datablase.database.config import DatabaseConfig
from datablase.models import tables  # noqa: F401  (registers table metadata)

logger = logging.getLogger(__name__)

# Global engine cache (one engine per unique connection URL)
_engines: dict[str, Engine] = {}


def get_engine(config: Optional[DatabaseConfig] = None) -> Engine:
    """Get or create a SQLAlchemy engine.

    Args:
        config: Database configuration (read from environment if None)

    Returns:
        SQLAlchemy Engine instance
    """
    if config is None:
        config = DatabaseConfig.from_env()

    connection_url = config.get_connection_url()

    if connection_url in _engines:
        return _engines[connection_url]

    engine = create_engine(
        connection_url,
        echo=config.echo,
        pool_size=config.max_connections,
        pool_timeout=config.connection_timeout,
        pool_pre_ping=True,
    )

    _engines[connection_url] = engine
    return engine


def create_schema(config: Optional[DatabaseConfig] = None) -> list[str]:
    """Create every table and index the merge store expects.

    Existing tables are left untouched.

    Returns:
        Names of the tables known to the metadata
    """
    engine = get_engine(config)
    SQLModel.metadata.create_all(engine)
    names = sorted(SQLModel.metadata.tables)
    logger.info(f"Ensured {len(names)} tables: {', '.join(names)}")
    return names


def dispose_engines() -> None:
    """Dispose all cached engines."""
    for engine in _engines.values():
        engine.dispose()

    _engines.clear()
