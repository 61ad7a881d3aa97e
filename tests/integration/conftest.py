"""Fixtures for integration tests against a live PostgreSQL database."""

import asyncio
import os
from typing import Any, Awaitable, Callable

import pytest
from sqlalchemy.exc import OperationalError

from datablase.database.config import DatabaseConfig
from datablase.database.session import create_schema, dispose_engines
from datablase.storage.postgres import PostgresMergeStore


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture(scope="session")
def db_config() -> DatabaseConfig:
    """Database configuration for tests.

    Uses environment variables or defaults to local test database.
    """
    return DatabaseConfig(
        host=os.getenv("TEST_DB_HOST", "localhost"),
        port=int(os.getenv("TEST_DB_PORT", "5432")),
        database=os.getenv("TEST_DB_NAME", "blaseball"),
        user=os.getenv("TEST_DB_USER", "datablase"),
        password=os.getenv("TEST_DB_PASSWORD", "datablase_dev_password"),
        url=os.getenv("TEST_DATABLASE_URI"),
        max_connections=4,
    )


@pytest.fixture(scope="session")
def schema(db_config: DatabaseConfig) -> list[str]:
    """Create every table once per session; skip when no database is reachable."""
    try:
        return create_schema(db_config)
    except OperationalError as e:
        pytest.skip(f"PostgreSQL not available: {e}")
    finally:
        dispose_engines()


@pytest.fixture
def with_store(db_config: DatabaseConfig, schema: list[str]):
    """Run an async scenario against an open store on truncated tables.

    Usage:
        result = with_store(scenario)   # scenario: async (store) -> result
    """

    def _run(scenario: Callable[[PostgresMergeStore], Awaitable[Any]]) -> Any:
        async def _main():
            store = await PostgresMergeStore(db_config).open()
            try:
                await truncate_tables(store, schema)
                return await scenario(store)
            finally:
                await truncate_tables(store, schema)
                await store.close()

        return asyncio.run(_main())

    return _run


# ============================================================================
# Helpers
# ============================================================================

async def truncate_tables(store: PostgresMergeStore, tables: list[str]) -> None:
    """Truncate every datablase table."""
    async with store.pool.connection() as conn:
        await conn.execute(f"TRUNCATE TABLE {', '.join(tables)}")
        await conn.commit()


async def fetch_rows(store: PostgresMergeStore, sql: str, params: Any = None) -> list[dict]:
    """Execute query and return results as list of dicts."""
    async with store.pool.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(sql, params)
            return await cur.fetchall()


# Make helper functions available to tests
pytest.fetch_rows = fetch_rows
