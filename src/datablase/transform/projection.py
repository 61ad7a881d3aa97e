"""Derived aggregates folded from the update log.

Game aggregate (one per game id), folded in ascending first_seen order:
- season, day: from the first update seen for the game, never overwritten
- last_update, last_update_time: payload and first_seen of the latest update
- start: earliest first_seen among updates flagged ``gameStart``
- end: earliest last_seen among updates flagged ``gameComplete``

Note that ``end`` reads last_seen while ``start`` reads first_seen.

Hourly idols aggregate: the player ids of an idols update, keyed by the UTC
top of the hour in which the update was observed.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from datablase.models.updates import EntityKind, Update

logger = logging.getLogger(__name__)


@dataclass
class GameAggregate:
    """Current state of one game."""

    game_id: str
    season: Optional[int]
    day: Optional[int]
    last_update: Any
    last_update_time: datetime
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @property
    def is_complete(self) -> bool:
        return self.end is not None

    def apply(self, update: Update) -> None:
        """Fold one later update into this aggregate."""
        if update.first_seen >= self.last_update_time:
            self.last_update = update.payload
            self.last_update_time = update.first_seen

        if _flag(update.payload, "gameStart"):
            self.start = _earliest(self.start, update.first_seen)
        if _flag(update.payload, "gameComplete"):
            self.end = _earliest(self.end, update.last_seen)

    @classmethod
    def first(cls, update: Update) -> "GameAggregate":
        """Start an aggregate from the first update seen for a game."""
        payload = update.payload if isinstance(update.payload, dict) else {}
        aggregate = cls(
            game_id=update.key,
            season=payload.get("season"),
            day=payload.get("day"),
            last_update=update.payload,
            last_update_time=update.first_seen,
        )
        aggregate.apply(update)
        return aggregate


class GameProjection:
    """Folds game updates into per-game aggregates.

    Usage:
        >>> projection = GameProjection()
        >>> projection.fold(updates)          # full rebuild
        >>> projection.apply(new_update)      # incremental, in arrival order
        >>> projection.games["game-id"].start
    """

    def __init__(self):
        self.games: dict[str, GameAggregate] = {}

    def apply(self, update: Update) -> Optional[GameAggregate]:
        """Fold a single game update; updates without a game id are ignored."""
        if update.kind != EntityKind.GAME:
            raise ValueError(f"Cannot project {update.kind.value} into games")
        if not update.key:
            logger.warning(f"Game update {update.identity} has no game id, skipping")
            return None

        aggregate = self.games.get(update.key)
        if aggregate is None:
            aggregate = GameAggregate.first(update)
            self.games[update.key] = aggregate
        else:
            aggregate.apply(update)
        return aggregate

    def fold(self, updates: Iterable[Update]) -> dict[str, GameAggregate]:
        """Fold updates in ascending first_seen order (ties by identity)."""
        for update in sorted(updates, key=_log_order):
            self.apply(update)
        return self.games

    @classmethod
    def rebuild(cls, updates: Iterable[Update]) -> dict[str, GameAggregate]:
        """Build aggregates from scratch over a whole update log."""
        return cls().fold(updates)


@dataclass
class IdolsHourly:
    """Idol board membership for one hour."""

    hour: datetime
    players: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_update(cls, update: Update) -> "IdolsHourly":
        """Bucket an idols update by the hour it was first seen in.

        Each player gets the provisional rank 0.
        """
        return cls(
            hour=hour_bucket(update.first_seen),
            players={player_id: 0 for player_id in idol_player_ids(update.payload)},
        )


def hour_bucket(ts: datetime) -> datetime:
    """Top of the hour containing ``ts``, expressed in UTC."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).replace(minute=0, second=0, microsecond=0)


def idol_player_ids(payload: Any) -> list[str]:
    """Player ids of an idols payload (flat array or ``{"idols": [...]}``)."""
    if isinstance(payload, dict):
        payload = payload.get("idols", [])
    if not isinstance(payload, list):
        return []

    ids = []
    for entry in payload:
        if isinstance(entry, dict) and entry.get("playerId"):
            ids.append(str(entry["playerId"]))
    return ids


def _log_order(update: Update) -> tuple[datetime, str]:
    return update.first_seen, update.identity


def _flag(payload: Any, name: str) -> bool:
    return isinstance(payload, dict) and payload.get(name) is True


def _earliest(current: Optional[datetime], candidate: datetime) -> datetime:
    return candidate if current is None else min(current, candidate)
