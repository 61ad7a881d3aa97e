"""Ingestion daemon.

Long-running process that runs every ingestion worker concurrently:
1. Stream worker: raw payloads, game updates (+ game aggregates), team updates
2. Idols poller: idols board and auxiliary feeds every minute
3. Player poller: roster players every 5 minutes, once a roster is known

All workers write to one merge store. Failures stay inside the payload or tick
that caused them; SIGINT/SIGTERM cancel all workers together.

Usage:
    python -m datablase.pipeline.daemon

Environment Variables:
    DATABLASE_URI: PostgreSQL connection URL
    DATABLASE_CONFIG: Optional path to a YAML ingest config
"""

import asyncio
import json
import logging
import os
import signal
import sys
from datetime import datetime
from typing import Optional, Sequence

from datablase.ingestion.client import FeedClient
from datablase.ingestion.config import IngestConfig, load_ingest_config
from datablase.models.updates import EntityKind, Update, utc_now
from datablase.storage.base import MergeStore

from .extractors import UpdateExtractor
from .pollers import IdolsPoller, PlayerPoller
from .stream import EventStream

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: int = logging.INFO) -> None:
    """Configure process-wide logging to stdout."""
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # Per-request lines from httpx drown out the ingestion log.
    logging.getLogger("httpx").setLevel(logging.WARNING)


class IngestDaemon:
    """Runs the stream worker and both pollers against one merge store."""

    def __init__(
        self,
        config: IngestConfig,
        store: MergeStore,
        client: Optional[FeedClient] = None,
    ):
        """Initialize the daemon.

        Args:
            config: Ingestion configuration
            store: Merge store shared by every worker
            client: Feed client (created from config if None)
        """
        self.config = config
        self.store = store
        self.client = client or FeedClient(config.ingestion)

        # Latest team updates from the stream; gates the player poller
        self.last_teams: Optional[list[Update]] = None

        schedule = config.schedule
        self.stream = EventStream(self.client, reconnect_delay=schedule.reconnect_delay_seconds)
        self.idols_poller = IdolsPoller(
            self.client,
            store,
            config.endpoints,
            period_seconds=schedule.idols_period_seconds,
        )
        self.player_poller = PlayerPoller(
            self.client,
            store,
            config.endpoints.players_url,
            roster=self.current_roster,
            chunk_size=config.ingestion.player_chunk_size,
            period_seconds=schedule.players_period_seconds,
            roster_wait_seconds=schedule.roster_wait_seconds,
        )

        self._tasks: list[asyncio.Task] = []
        self.stats = {
            "raw_updates": 0,
            "game_updates": 0,
            "team_updates": 0,
            "started_at": utc_now(),
        }

    def current_roster(self) -> Optional[Sequence[Update]]:
        return self.last_teams

    async def handle_stream_payload(self, text: str, observed_at: Optional[datetime] = None) -> None:
        """Store one stream payload: raw snapshot, games, then teams.

        Raises:
            json.JSONDecodeError: If the payload is not JSON
        """
        observed_at = observed_at or utc_now()
        payload = json.loads(text)

        raw = Update.observe(EntityKind.RAW, payload, observed_at)
        await self.store.merge(EntityKind.RAW, [raw])
        self.stats["raw_updates"] += 1
        logger.info(f"Saved raw event {raw.identity} at {observed_at.isoformat()}")

        games = UpdateExtractor.game_updates(payload, observed_at)
        if games:
            await self.store.merge(EntityKind.GAME, games)
            await self.store.refresh_games({game.key for game in games})
            self.stats["game_updates"] += len(games)
            for game in games:
                logger.info(f"Saved game update {game.identity} (game {game.key})")

        teams = UpdateExtractor.team_updates(payload, observed_at)
        if teams:
            await self.store.merge(EntityKind.TEAM, teams)
            self.stats["team_updates"] += len(teams)
            self.last_teams = teams
            logger.info(f"Saved {len(teams)} teams at {observed_at.isoformat()}")

    async def run(self) -> None:
        """Run every worker until cancelled."""
        logger.info("Starting ingestion daemon")
        logger.info(f"  Stream: {self.config.endpoints.stream_url}")
        logger.info(f"  Idols period: {self.config.schedule.idols_period_seconds}s")
        logger.info(f"  Players period: {self.config.schedule.players_period_seconds}s")

        self._tasks = [
            asyncio.create_task(
                self.stream.stream(self.config.endpoints.stream_url, self.handle_stream_payload),
                name="stream",
            ),
            asyncio.create_task(self.idols_poller.run(), name="idols"),
            asyncio.create_task(self.player_poller.run(), name="players"),
        ]

        try:
            await asyncio.gather(*self._tasks)
        except asyncio.CancelledError:
            logger.info("Daemon cancelled")
        finally:
            await self._shutdown()

    def stop(self) -> None:
        """Cancel every worker; safe to call from a signal handler."""
        for worker in (self.stream, self.idols_poller, self.player_poller):
            worker.stop()
        for task in self._tasks:
            task.cancel()

    def install_signal_handlers(self) -> None:
        """Route SIGINT/SIGTERM to stop()."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._on_signal, sig)

    def _on_signal(self, sig: signal.Signals) -> None:
        logger.info(f"Received signal {sig.name}, initiating graceful shutdown...")
        self.stop()

    async def _shutdown(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)

        logger.info("Shutting down ingestion daemon")
        logger.info(f"  Raw updates: {self.stats['raw_updates']}")
        logger.info(f"  Game updates: {self.stats['game_updates']}")
        logger.info(f"  Team updates: {self.stats['team_updates']}")
        logger.info(f"  Stream: {self.stream.stats}")
        logger.info(f"  Uptime: {utc_now() - self.stats['started_at']}")

        await self.client.aclose()
        await self.store.close()


async def run_daemon(config: IngestConfig, memory: bool = False) -> None:
    """Build the store named by the configuration and run the daemon."""
    if memory or config.storage == "memory":
        from datablase.storage.memory import InMemoryMergeStore

        store: MergeStore = InMemoryMergeStore()
        logger.info("Using in-memory merge store (nothing is persisted)")
    else:
        from datablase.storage.postgres import create_postgres_store

        store = await create_postgres_store()

    daemon = IngestDaemon(config, store)
    daemon.install_signal_handlers()
    await daemon.run()


def main():
    """Entry point for the daemon."""
    configure_logging()
    config = load_ingest_config(os.environ.get("DATABLASE_CONFIG"))

    try:
        asyncio.run(run_daemon(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.exception(f"Daemon crashed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
