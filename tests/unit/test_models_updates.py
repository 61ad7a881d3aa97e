"""Unit tests for update records and content hashing."""

import json
from datetime import timedelta

import pytest

from datablase.models.updates import (
    EntityKind,
    Update,
    canonical_json,
    content_hash,
    natural_id,
)


class TestContentHash:
    """Test canonical encoding and hashing."""

    def test_key_order_does_not_matter(self):
        """Test structurally identical payloads share a hash."""
        a = {"id": "x", "season": 4, "nested": {"b": 1, "a": 2}}
        b = {"nested": {"a": 2, "b": 1}, "season": 4, "id": "x"}

        assert content_hash(a) == content_hash(b)

    def test_different_payloads_differ(self):
        """Test any value change changes the hash."""
        assert content_hash({"homeScore": 1}) != content_hash({"homeScore": 2})

    def test_hash_is_sha256_hex(self):
        """Test hash format."""
        digest = content_hash([1, 2, 3])

        assert len(digest) == 64
        int(digest, 16)

    def test_canonical_json_is_compact_and_sorted(self):
        """Test canonical encoding."""
        assert canonical_json({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'

    def test_non_ascii_is_preserved(self):
        """Test unicode payloads hash deterministically."""
        assert content_hash({"name": "Jaylen Hotdogfingers 🌭"}) == content_hash(
            {"name": "Jaylen Hotdogfingers 🌭"}
        )


class TestNaturalId:
    """Test natural identifier lookup."""

    def test_reads_id(self):
        assert natural_id({"id": "abc"}) == "abc"

    def test_falls_back_to_underscore_id(self):
        assert natural_id({"_id": "abc"}) == "abc"

    def test_missing_id(self):
        assert natural_id({"name": "no id"}) is None

    def test_non_dict(self):
        assert natural_id(["abc"]) is None


class TestEntityKind:
    """Test EntityKind metadata."""

    def test_key_columns(self):
        """Test kinds with natural keys."""
        assert EntityKind.GAME.key_column == "game_id"
        assert EntityKind.TEAM.key_column == "team_id"
        assert EntityKind.PLAYER.key_column == "player_id"
        assert EntityKind.SCRIPT.key_column == "url"

    def test_keyless_kinds(self):
        """Test kinds without natural keys."""
        for kind in (EntityKind.RAW, EntityKind.IDOLS, EntityKind.TRIBUTES, EntityKind.GLOBAL_EVENTS):
            assert kind.key_column is None


class TestUpdate:
    """Test Update construction and merging."""

    def test_observe(self, t0):
        """Test a fresh observation has a single-instant window."""
        update = Update.observe(EntityKind.TEAM, {"id": "t"}, t0, key="t")

        assert update.identity == content_hash({"id": "t"})
        assert update.first_seen == t0
        assert update.last_seen == t0
        assert update.key == "t"

    def test_merged_with_widens_window(self, t0):
        """Test merging keeps payload and widens first/last seen."""
        payload = {"id": "t", "wins": 3}
        middle = Update.observe(EntityKind.TEAM, payload, t0, key="t")
        earlier = Update.observe(EntityKind.TEAM, payload, t0 - timedelta(minutes=5), key="t")
        later = Update.observe(EntityKind.TEAM, payload, t0 + timedelta(minutes=5), key="t")

        merged = middle.merged_with(later).merged_with(earlier)

        assert merged.first_seen == t0 - timedelta(minutes=5)
        assert merged.last_seen == t0 + timedelta(minutes=5)
        assert merged.payload == payload

    def test_merged_with_rejects_other_identity(self, t0):
        """Test merging different payloads is refused."""
        a = Update.observe(EntityKind.RAW, {"a": 1}, t0)
        b = Update.observe(EntityKind.RAW, {"a": 2}, t0)

        with pytest.raises(ValueError, match="identities differ"):
            a.merged_with(b)


class TestLoneSurrogates:
    """Test payloads carrying unpaired surrogate escapes."""

    def test_hash_accepts_lone_surrogate(self):
        """Test a decoded "\\ud83d" escape hashes instead of raising."""
        payload = json.loads('{"id": "g1", "lastUpdate": "\\ud83d"}')

        digest = content_hash(payload)

        assert len(digest) == 64
        assert digest == content_hash(json.loads('{"lastUpdate": "\\ud83d", "id": "g1"}'))
        assert digest != content_hash(json.loads('{"id": "g1", "lastUpdate": "\\ud83e"}'))

    def test_observe_lone_surrogate(self, t0):
        update = Update.observe(EntityKind.GAME, {"id": "g1", "lastUpdate": "\ud83d"}, t0, key="g1")

        assert update.identity == content_hash({"id": "g1", "lastUpdate": "\ud83d"})
