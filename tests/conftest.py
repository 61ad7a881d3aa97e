"""Pytest configuration and fixtures for all tests."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from datablase.models.updates import EntityKind, Update
from datablase.storage.memory import InMemoryMergeStore


# ============================================================================
# Time Fixtures
# ============================================================================

@pytest.fixture
def t0() -> datetime:
    """A fixed observation instant."""
    return datetime(2020, 8, 1, 14, 5, 0, tzinfo=timezone.utc)


@pytest.fixture
def later(t0):
    """Factory for instants relative to t0."""
    def _later(seconds: float) -> datetime:
        return t0 + timedelta(seconds=seconds)
    return _later


# ============================================================================
# Payload Fixtures
# ============================================================================

def make_game(game_id: str, **fields) -> dict:
    """Schedule entry as delivered by the stream."""
    game = {
        "id": game_id,
        "season": 4,
        "day": 12,
        "gameStart": False,
        "gameComplete": False,
        "homeScore": 0,
        "awayScore": 0,
        "outcomes": [],
    }
    game.update(fields)
    return game


def make_team(team_id: str, lineup: list, rotation: list) -> dict:
    """Team entry as delivered by the stream."""
    return {
        "id": team_id,
        "fullName": f"Team {team_id}",
        "lineup": lineup,
        "rotation": rotation,
    }


@pytest.fixture
def stream_payload() -> dict:
    """Stream payload with both schedule and teams collections."""
    return {
        "value": {
            "games": {
                "sim": {"season": 4, "day": 12},
                "schedule": [
                    make_game("game-1", gameStart=True),
                    make_game("game-2"),
                ],
            },
            "leagues": {
                "teams": [
                    make_team("team-1", ["p1", "p2"], ["p3"]),
                    make_team("team-2", ["p4"], ["p5", "p6"]),
                ],
            },
        }
    }


# ============================================================================
# Store / Client Fixtures
# ============================================================================

@pytest.fixture
def memory_store() -> InMemoryMergeStore:
    """Empty in-memory merge store."""
    return InMemoryMergeStore()


@pytest.fixture
def mock_client() -> MagicMock:
    """FeedClient stand-in with async request methods."""
    client = MagicMock()
    client.get_json = AsyncMock()
    client.get_text = AsyncMock()
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def game_update():
    """Factory for game updates observed at given instants."""
    def _game_update(game_id: str, first_seen: datetime, last_seen: datetime | None = None, **fields):
        update = Update.observe(
            EntityKind.GAME, make_game(game_id, **fields), first_seen, key=game_id
        )
        if last_seen is not None:
            update = update.merged_with(
                Update.observe(EntityKind.GAME, update.payload, last_seen, key=game_id)
            )
        return update
    return _game_update


@pytest.fixture
def game_payload():
    """Factory for schedule entries."""
    return make_game


@pytest.fixture
def team_payload():
    """Factory for team entries."""
    return make_team
