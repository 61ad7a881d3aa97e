"""Unit tests for engine management and schema creation.

Uses mocking to test without requiring a live database.
"""

from unittest.mock import MagicMock, patch

import pytest

from datablase.database.config import DatabaseConfig
from datablase.database.session import _engines, create_schema, dispose_engines, get_engine


@pytest.fixture(autouse=True)
def clear_engine_cache():
    """Clear the global engine cache before each test."""
    _engines.clear()
    yield
    _engines.clear()


class TestGetEngine:
    """Test get_engine() function."""

    @patch("datablase.database.session.create_engine")
    def test_creates_engine_with_psycopg_url(self, mock_create_engine):
        config = DatabaseConfig(host="db", user="u", password="p", database="d")

        engine = get_engine(config)

        assert engine is mock_create_engine.return_value
        url = mock_create_engine.call_args.args[0]
        assert url == "postgresql+psycopg://u:p@db:5432/d"
        assert mock_create_engine.call_args.kwargs["pool_pre_ping"] is True

    @patch("datablase.database.session.create_engine")
    def test_engine_cached_per_url(self, mock_create_engine):
        mock_create_engine.side_effect = lambda *args, **kwargs: MagicMock()
        config = DatabaseConfig()

        assert get_engine(config) is get_engine(config)
        assert get_engine(DatabaseConfig(host="other")) is not get_engine(config)
        assert mock_create_engine.call_count == 2


class TestSchema:
    """Test create_schema() and dispose_engines()."""

    @patch("datablase.database.session.SQLModel.metadata.create_all")
    @patch("datablase.database.session.create_engine")
    def test_create_schema(self, mock_create_engine, mock_create_all):
        names = create_schema(DatabaseConfig())

        mock_create_all.assert_called_once_with(mock_create_engine.return_value)
        assert "game_updates" in names
        assert "games" in names
        assert "idols_hourly" in names

    @patch("datablase.database.session.create_engine")
    def test_dispose_engines(self, mock_create_engine):
        engine = get_engine(DatabaseConfig())

        dispose_engines()

        engine.dispose.assert_called_once()
        assert _engines == {}
