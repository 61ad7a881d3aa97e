"""ORM models for the merge store tables.

Update tables share one layout:
- id: content hash of the payload (primary key, dedup key)
- payload: JSONB snapshot, written once on insert
- first_seen / last_seen: observation window widened on every merge
- optional natural-key column indexed together with first_seen

Derived tables (games, idols_hourly) are written by the projection builder.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

from .updates import EntityKind


# ============================================================================
# BASE MODEL FOR UPDATE TABLES
# ============================================================================


class UpdateTableBase(SQLModel):
    """Columns common to every event-derived update table."""

    id: str = Field(sa_type=String(64), primary_key=True, nullable=False)
    payload: Any = Field(sa_type=JSONB, nullable=False)
    first_seen: datetime = Field(sa_type=DateTime(timezone=True), nullable=False)
    last_seen: datetime = Field(sa_type=DateTime(timezone=True), nullable=False)


# ============================================================================
# UPDATE TABLES
# ============================================================================


class RawUpdateRow(UpdateTableBase, table=True):
    """Whole stream payloads, exactly as delivered."""

    __tablename__ = EntityKind.RAW.value
    __table_args__ = (Index("ix_raw_updates_first_seen", "first_seen"),)


class GameUpdateRow(UpdateTableBase, table=True):
    """Schedule entries extracted from stream payloads."""

    __tablename__ = EntityKind.GAME.value
    __table_args__ = (Index("ix_game_updates_game_first_seen", "game_id", "first_seen"),)

    game_id: str = Field(sa_type=String(64), nullable=False)


class TeamUpdateRow(UpdateTableBase, table=True):
    """Team entries extracted from stream payloads."""

    __tablename__ = EntityKind.TEAM.value
    __table_args__ = (Index("ix_team_updates_team_first_seen", "team_id", "first_seen"),)

    team_id: str = Field(sa_type=String(64), nullable=False)


class PlayerUpdateRow(UpdateTableBase, table=True):
    """Player documents from the chunked player poll."""

    __tablename__ = EntityKind.PLAYER.value
    __table_args__ = (
        Index("ix_player_updates_player_first_seen", "player_id", "first_seen"),
    )

    player_id: str = Field(sa_type=String(64), nullable=False)


class IdolsUpdateRow(UpdateTableBase, table=True):
    __tablename__ = EntityKind.IDOLS.value


class TributesUpdateRow(UpdateTableBase, table=True):
    __tablename__ = EntityKind.TRIBUTES.value


class GlobalEventsUpdateRow(UpdateTableBase, table=True):
    __tablename__ = EntityKind.GLOBAL_EVENTS.value


class ScriptUpdateRow(UpdateTableBase, table=True):
    """Script assets served by the site; payload is the script text."""

    __tablename__ = EntityKind.SCRIPT.value

    url: str = Field(sa_type=Text, nullable=False)


# ============================================================================
# DERIVED TABLES
# ============================================================================


class GameRow(SQLModel, table=True):
    """Current-state aggregate per game, folded from game_updates."""

    __tablename__ = "games"
    __table_args__ = (Index("ix_games_season_day", "season", "day"),)

    id: str = Field(sa_type=String(64), primary_key=True, nullable=False)
    season: Optional[int] = Field(sa_type=Integer, default=None)
    day: Optional[int] = Field(sa_type=Integer, default=None)
    last_update: Any = Field(sa_type=JSONB, nullable=False)
    last_update_time: datetime = Field(sa_type=DateTime(timezone=True), nullable=False)
    start_time: Optional[datetime] = Field(sa_type=DateTime(timezone=True), default=None)
    end_time: Optional[datetime] = Field(sa_type=DateTime(timezone=True), default=None)


Index("ix_games_season_day_desc", GameRow.season.desc(), GameRow.day.desc())


class IdolsHourlyRow(SQLModel, table=True):
    """Idol board membership per hour of first observation."""

    __tablename__ = "idols_hourly"

    hour: datetime = Field(sa_type=DateTime(timezone=True), primary_key=True, nullable=False)
    players: dict[str, int] = Field(sa_type=JSONB, nullable=False)


UPDATE_TABLES: dict[EntityKind, type[UpdateTableBase]] = {
    EntityKind.RAW: RawUpdateRow,
    EntityKind.GAME: GameUpdateRow,
    EntityKind.TEAM: TeamUpdateRow,
    EntityKind.PLAYER: PlayerUpdateRow,
    EntityKind.IDOLS: IdolsUpdateRow,
    EntityKind.TRIBUTES: TributesUpdateRow,
    EntityKind.GLOBAL_EVENTS: GlobalEventsUpdateRow,
    EntityKind.SCRIPT: ScriptUpdateRow,
}
