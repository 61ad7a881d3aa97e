"""Merge store interface shared by every storage backend.

A merge store offers one write primitive, applied identically to every
entity kind:

    merge(kind, updates)

    - no record for update.identity -> insert it as observed
    - record exists -> keep payload and key,
      first_seen = min(stored, observed), last_seen = max(stored, observed)

The operation is idempotent and commutative, so workers may write the same
observation any number of times, concurrently and in any order, without
locks or deduplication upstream of the store.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Sequence

from datablase.models.updates import EntityKind, Update
from datablase.transform.projection import IdolsHourly


class MergeStore(ABC):
    """Persistence service for update records and derived aggregates."""

    @abstractmethod
    async def merge(self, kind: EntityKind, updates: Sequence[Update]) -> int:
        """Merge observations of one kind by identity.

        Returns:
            Number of updates written
        """

    @abstractmethod
    async def save_idols_hourly(self, hourly: IdolsHourly) -> bool:
        """Store an hourly idols record unless one exists for that hour.

        Returns:
            True if the record was inserted, False if the hour was taken
        """

    @abstractmethod
    async def refresh_games(self, game_ids: Iterable[str]) -> int:
        """Re-derive the game aggregates of the given games from the log.

        Returns:
            Number of aggregates written
        """

    @abstractmethod
    async def rebuild_games(self) -> int:
        """Re-derive every game aggregate from the whole update log."""

    async def close(self) -> None:
        """Release backend resources."""

    @staticmethod
    def check_kind(kind: EntityKind, updates: Sequence[Update]) -> None:
        """Reject batches that mix kinds."""
        for update in updates:
            if update.kind != kind:
                raise ValueError(
                    f"Update {update.identity} is {update.kind.value}, expected {kind.value}"
                )
