"""Update records and storage table models."""

from .tables import UPDATE_TABLES, GameRow, IdolsHourlyRow
from .updates import EntityKind, Update, canonical_json, content_hash, natural_id, utc_now

__all__ = [
    "EntityKind",
    "Update",
    "canonical_json",
    "content_hash",
    "natural_id",
    "utc_now",
    "UPDATE_TABLES",
    "GameRow",
    "IdolsHourlyRow",
]
