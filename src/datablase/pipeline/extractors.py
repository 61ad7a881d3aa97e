"""Update extractors for stream and poll payloads.

Locates nested sub-collections by a fixed probe order and turns each element
into a typed Update:
- schedule: value? -> games? -> schedule (required)
- teams:    value? -> leagues? -> teams (required)

A payload missing its required collection yields no updates and one warning.
"""

import logging
from datetime import datetime
from typing import Any, Optional, Sequence

from datablase.models.updates import EntityKind, Update, natural_id

logger = logging.getLogger(__name__)


class UpdateExtractor:
    """Extract typed updates from raw payloads."""

    @staticmethod
    def extract_schedule(payload: Any) -> Optional[list]:
        """Find the schedule array in a stream payload, or None."""
        return _probe(payload, wrapper="games", collection="schedule")

    @staticmethod
    def extract_teams(payload: Any) -> Optional[list]:
        """Find the teams array in a stream or poll payload, or None."""
        return _probe(payload, wrapper="leagues", collection="teams")

    @staticmethod
    def game_updates(payload: Any, observed_at: datetime) -> list[Update]:
        """Extract one game update per schedule entry.

        Args:
            payload: Decoded stream payload
            observed_at: Shared observation instant for every entry

        Returns:
            Game updates (empty when the schedule is missing)
        """
        schedule = UpdateExtractor.extract_schedule(payload)
        if schedule is None:
            return []
        return _keyed_updates(EntityKind.GAME, schedule, observed_at)

    @staticmethod
    def team_updates(payload: Any, observed_at: datetime) -> list[Update]:
        """Extract one team update per teams entry."""
        teams = UpdateExtractor.extract_teams(payload)
        if teams is None:
            return []
        return _keyed_updates(EntityKind.TEAM, teams, observed_at)

    @staticmethod
    def player_updates(payload: Any, observed_at: datetime) -> list[Update]:
        """Extract player updates from a players poll response (flat array)."""
        if not isinstance(payload, list):
            logger.warning("Players response is not an array, skipping")
            return []
        return _keyed_updates(EntityKind.PLAYER, payload, observed_at)

    @staticmethod
    def player_ids(team_updates: Sequence[Update]) -> list[str]:
        """Collect lineup and rotation player ids across teams.

        Order follows the teams; duplicates are kept.
        """
        ids = []
        for team in team_updates:
            payload = team.payload if isinstance(team.payload, dict) else {}
            for role in ("lineup", "rotation"):
                ids.extend(str(player) for player in payload.get(role) or [])
        return ids


def _probe(payload: Any, wrapper: str, collection: str) -> Optional[list]:
    node = payload
    if isinstance(node, dict) and isinstance(node.get("value"), dict):
        node = node["value"]
    if isinstance(node, dict) and isinstance(node.get(wrapper), dict):
        node = node[wrapper]

    found = node.get(collection) if isinstance(node, dict) else None
    if not isinstance(found, list):
        logger.warning(f"Couldn't find {collection} property, skipping payload")
        return None
    return found


def _keyed_updates(kind: EntityKind, elements: list, observed_at: datetime) -> list[Update]:
    updates = []
    for element in elements:
        key = natural_id(element)
        if key is None:
            logger.warning(f"Skipping {kind.value} entry without an id")
            continue
        updates.append(Update.observe(kind, element, observed_at, key=key))
    return updates
