"""PostgreSQL merge store.

This module provides:
- Async connection pooling with psycopg_pool
- Merge-by-identity upserts for every update table (JSONB payloads)
- Game aggregate projection computed in SQL, per game or for the whole log
- Insert-if-absent hourly idols records
"""

import logging
from typing import Any, Iterable, Optional, Sequence

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import AsyncConnectionPool

from datablase.database.config import DatabaseConfig
from datablase.models.updates import EntityKind, Update
from datablase.transform.projection import IdolsHourly

from .base import MergeStore

logger = logging.getLogger(__name__)


GAME_PROJECTION_SQL = """
WITH log AS (
    SELECT id, game_id, payload, first_seen, last_seen
    FROM game_updates
    {where}
),
firsts AS (
    SELECT DISTINCT ON (game_id)
        game_id,
        (payload->>'season')::int AS season,
        (payload->>'day')::int AS day
    FROM log
    ORDER BY game_id, first_seen ASC, id COLLATE "C" ASC
),
lasts AS (
    SELECT DISTINCT ON (game_id)
        game_id,
        payload AS last_update,
        first_seen AS last_update_time
    FROM log
    ORDER BY game_id, first_seen DESC, id COLLATE "C" DESC
),
starts AS (
    SELECT game_id, min(first_seen) AS start_time
    FROM log
    WHERE payload->'gameStart' = 'true'::jsonb
    GROUP BY game_id
),
ends AS (
    SELECT game_id, min(last_seen) AS end_time
    FROM log
    WHERE payload->'gameComplete' = 'true'::jsonb
    GROUP BY game_id
)
INSERT INTO games (id, season, day, last_update, last_update_time, start_time, end_time)
SELECT f.game_id, f.season, f.day, l.last_update, l.last_update_time, s.start_time, e.end_time
FROM firsts f
JOIN lasts l USING (game_id)
LEFT JOIN starts s USING (game_id)
LEFT JOIN ends e USING (game_id)
ON CONFLICT (id) DO UPDATE SET
    season = EXCLUDED.season,
    day = EXCLUDED.day,
    last_update = EXCLUDED.last_update,
    last_update_time = EXCLUDED.last_update_time,
    start_time = EXCLUDED.start_time,
    end_time = EXCLUDED.end_time
"""

IDOLS_HOURLY_SQL = """
INSERT INTO idols_hourly (hour, players)
VALUES (%(hour)s, %(players)s)
ON CONFLICT (hour) DO NOTHING
"""


def build_merge_sql(kind: EntityKind) -> str:
    """Build the merge-by-identity upsert for one update table.

    Args:
        kind: Entity kind (its value is the table name)

    Returns:
        INSERT ... ON CONFLICT statement with named placeholders
    """
    table = kind.value
    columns = ["id", "payload", "first_seen", "last_seen"]
    if kind.key_column:
        columns.insert(1, kind.key_column)

    column_list = ", ".join(columns)
    placeholders = ", ".join(f"%({column})s" for column in columns)

    return (
        f"INSERT INTO {table} ({column_list}) VALUES ({placeholders}) "
        f"ON CONFLICT (id) DO UPDATE SET "
        f"first_seen = LEAST({table}.first_seen, EXCLUDED.first_seen), "
        f"last_seen = GREATEST({table}.last_seen, EXCLUDED.last_seen)"
    )


def merge_params(update: Update) -> dict[str, Any]:
    """Bind values for one update in a merge statement."""
    params = {
        "id": update.identity,
        "payload": Jsonb(update.payload),
        "first_seen": update.first_seen,
        "last_seen": update.last_seen,
    }
    if update.kind.key_column:
        params[update.kind.key_column] = update.key
    return params


class PostgresMergeStore(MergeStore):
    """Merge store on PostgreSQL JSONB tables.

    Every write is a single atomic statement whose result does not depend on
    the order or multiplicity of calls, so no application-level locking is
    needed between workers.
    """

    def __init__(
        self,
        config: DatabaseConfig,
        pool: Optional[AsyncConnectionPool] = None,
    ):
        """Initialize the store.

        Args:
            config: Database configuration
            pool: Existing async pool (created closed if None; call open())
        """
        self.config = config
        self.pool = pool or AsyncConnectionPool(
            conninfo=config.get_conninfo(),
            min_size=config.min_connections,
            max_size=config.max_connections,
            timeout=config.connection_timeout,
            kwargs={"row_factory": dict_row},
            open=False,
        )
        self._merge_sql = {kind: build_merge_sql(kind) for kind in EntityKind}

        self.stats = {
            "merged": 0,
            "errors": 0,
            "by_table": {},
        }

    async def open(self) -> "PostgresMergeStore":
        """Open the connection pool."""
        await self.pool.open()
        logger.info(f"Opened PostgreSQL connection pool: {self.config!r}")
        return self

    async def close(self) -> None:
        """Close the connection pool."""
        await self.pool.close()
        logger.info("Closed PostgreSQL connection pool")

    async def merge(self, kind: EntityKind, updates: Sequence[Update]) -> int:
        self.check_kind(kind, updates)
        if not updates:
            return 0

        # Consistent row lock order across concurrent batches.
        params = [merge_params(u) for u in sorted(updates, key=lambda u: u.identity)]

        async with self.pool.connection() as conn:
            try:
                async with conn.cursor() as cur:
                    await cur.executemany(self._merge_sql[kind], params)
                await conn.commit()
            except Exception as e:
                await conn.rollback()
                self.stats["errors"] += 1
                logger.error(f"Failed to merge {len(params)} rows into {kind.value}: {e}")
                raise

        self.stats["merged"] += len(params)
        self.stats["by_table"][kind.value] = self.stats["by_table"].get(kind.value, 0) + len(params)
        logger.debug(f"Merged {len(params)} rows into {kind.value}")
        return len(params)

    async def save_idols_hourly(self, hourly: IdolsHourly) -> bool:
        params = {"hour": hourly.hour, "players": Jsonb(hourly.players)}

        async with self.pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(IDOLS_HOURLY_SQL, params)
                inserted = cur.rowcount == 1
            await conn.commit()

        return inserted

    async def refresh_games(self, game_ids: Iterable[str]) -> int:
        ids = sorted(set(game_ids))
        if not ids:
            return 0
        return await self._project_games(
            "WHERE game_id = ANY(%(ids)s)", {"ids": ids}
        )

    async def rebuild_games(self) -> int:
        logger.info("Reindexing game collection")
        count = await self._project_games("", {})
        logger.info(f"Reindexed {count} games")
        return count

    async def _project_games(self, where: str, params: dict[str, Any]) -> int:
        sql = GAME_PROJECTION_SQL.format(where=where)

        async with self.pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(sql, params)
                count = cur.rowcount
            await conn.commit()

        return count

    def get_stats(self) -> dict[str, Any]:
        """Get merge statistics."""
        return self.stats.copy()


async def create_postgres_store(config: Optional[DatabaseConfig] = None) -> PostgresMergeStore:
    """Create and open a PostgreSQL merge store (config from environment if None)."""
    store = PostgresMergeStore(config or DatabaseConfig.from_env())
    return await store.open()
