"""Typed update records shared by every ingestion path.

Every event-derived entity follows the same shape:
- identity: content hash of the payload (the dedup key)
- payload: opaque snapshot of the entity at observation time
- first_seen / last_seen: observation window for that exact payload
- key: natural identifier (game/team/player id, script url) when the kind has one
"""

import hashlib
import json
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class EntityKind(str, Enum):
    """Kinds of event-derived records. Values are the storage table names."""

    RAW = "raw_updates"
    GAME = "game_updates"
    TEAM = "team_updates"
    PLAYER = "player_updates"
    IDOLS = "idols_updates"
    TRIBUTES = "tributes_updates"
    GLOBAL_EVENTS = "global_events_updates"
    SCRIPT = "script_updates"

    @property
    def key_column(self) -> Optional[str]:
        """Column holding the natural key, or None for keyless kinds."""
        return _KEY_COLUMNS.get(self)


_KEY_COLUMNS = {
    EntityKind.GAME: "game_id",
    EntityKind.TEAM: "team_id",
    EntityKind.PLAYER: "player_id",
    EntityKind.SCRIPT: "url",
}


def utc_now() -> datetime:
    """Current wall-clock instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def canonical_json(payload: Any) -> str:
    """Encode a payload deterministically (sorted keys, compact separators)."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def content_hash(payload: Any) -> str:
    """SHA-256 hex digest of the canonical JSON encoding of a payload.

    Lone surrogates (valid JSON escapes such as ``"\\ud83d"``) are hashed
    as-is rather than rejected.
    """
    return hashlib.sha256(canonical_json(payload).encode("utf-8", "surrogatepass")).hexdigest()


def natural_id(payload: Any) -> Optional[str]:
    """Read an entity's natural identifier (``id``, falling back to ``_id``)."""
    if not isinstance(payload, dict):
        return None
    value = payload.get("id") or payload.get("_id")
    return str(value) if value else None


@dataclass(frozen=True)
class Update:
    """One observation of an entity payload."""

    kind: EntityKind
    identity: str
    payload: Any
    first_seen: datetime
    last_seen: datetime
    key: Optional[str] = None

    @classmethod
    def observe(
        cls,
        kind: EntityKind,
        payload: Any,
        observed_at: datetime,
        key: Optional[str] = None,
    ) -> "Update":
        """Build a fresh observation keyed by the payload's content hash.

        Args:
            kind: Entity kind the payload belongs to
            payload: Decoded payload
            observed_at: Observation instant (first_seen == last_seen)
            key: Natural identifier for kinds that carry one

        Returns:
            Update with a single-instant observation window
        """
        return cls(
            kind=kind,
            identity=content_hash(payload),
            payload=payload,
            first_seen=observed_at,
            last_seen=observed_at,
            key=key,
        )

    def merged_with(self, other: "Update") -> "Update":
        """Widen this record's window with another observation of the same payload.

        The stored payload and key are kept; only the window moves.
        """
        if other.identity != self.identity:
            raise ValueError(
                f"Cannot merge {other.identity} into {self.identity}: identities differ"
            )
        return replace(
            self,
            first_seen=min(self.first_seen, other.first_seen),
            last_seen=max(self.last_seen, other.last_seen),
        )
