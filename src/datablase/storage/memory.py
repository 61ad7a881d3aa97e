"""In-process merge store.

Holds every record in dictionaries. Used by ``datablase ingest --memory``
for dry runs and by the test suite; semantics match the PostgreSQL store.
"""

import logging
from typing import Iterable, Optional, Sequence

from datablase.models.updates import EntityKind, Update
from datablase.transform.projection import GameAggregate, GameProjection, IdolsHourly

from .base import MergeStore

logger = logging.getLogger(__name__)


class InMemoryMergeStore(MergeStore):
    """Merge store backed by dictionaries keyed by identity."""

    def __init__(self):
        self.records: dict[EntityKind, dict[str, Update]] = {kind: {} for kind in EntityKind}
        self.games: dict[str, GameAggregate] = {}
        self.idols_hourly: dict = {}

    async def merge(self, kind: EntityKind, updates: Sequence[Update]) -> int:
        self.check_kind(kind, updates)
        table = self.records[kind]

        for update in updates:
            existing = table.get(update.identity)
            table[update.identity] = update if existing is None else existing.merged_with(update)

        return len(updates)

    async def save_idols_hourly(self, hourly: IdolsHourly) -> bool:
        if hourly.hour in self.idols_hourly:
            return False
        self.idols_hourly[hourly.hour] = hourly
        return True

    async def refresh_games(self, game_ids: Iterable[str]) -> int:
        wanted = set(game_ids)
        log = [u for u in self.records[EntityKind.GAME].values() if u.key in wanted]
        games = GameProjection.rebuild(log)
        self.games.update(games)
        return len(games)

    async def rebuild_games(self) -> int:
        self.games = GameProjection.rebuild(self.records[EntityKind.GAME].values())
        logger.info(f"Rebuilt {len(self.games)} game aggregates")
        return len(self.games)

    def get(self, kind: EntityKind, identity: str) -> Optional[Update]:
        """Look up a stored record by identity."""
        return self.records[kind].get(identity)

    def count(self, kind: EntityKind) -> int:
        """Number of distinct records of a kind."""
        return len(self.records[kind])
