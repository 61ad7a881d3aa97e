"""Wall-clock aligned poll workers.

Each worker loops {fetch -> merge -> sleep until the next aligned tick}.
A failed tick is logged and superseded by the next one; nothing is retried
within a tick beyond the HTTP client's connection-level retries.

- IdolsPoller: every minute; idols board plus the optional tributes,
  global-events and script-asset feeds, each isolated from the others.
- PlayerPoller: every 5 minutes, gated on the first roster snapshot from the
  stream; fetches players in chunks of at most 100 ids, each chunk isolated.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, Sequence

from datablase.ingestion.client import FeedClient
from datablase.ingestion.config import EndpointConfig
from datablase.models.updates import EntityKind, Update, utc_now
from datablase.storage.base import MergeStore
from datablase.transform.projection import IdolsHourly

from .extractors import UpdateExtractor
from .scheduling import chunked, seconds_until_next_boundary

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
RosterSource = Callable[[], Optional[Sequence[Update]]]


class AlignedPoller(ABC):
    """Base loop for pollers firing on wall-clock boundaries."""

    name = "poller"

    def __init__(self, period_seconds: float, clock: Clock = utc_now):
        self.period_seconds = period_seconds
        self.clock = clock
        self.running = True
        self.stats = {"ticks": 0, "errors": 0}

    def stop(self) -> None:
        """Stop before the next tick."""
        self.running = False

    def next_delay(self) -> float:
        """Seconds until the next aligned tick."""
        return seconds_until_next_boundary(self.clock(), self.period_seconds)

    async def before_first_tick(self) -> None:
        """Hook awaited once before the loop starts."""

    @abstractmethod
    async def run_once(self) -> Any:
        """Perform one tick's fetch and merge."""

    async def run(self) -> None:
        """Poll until stopped or cancelled."""
        await self.before_first_tick()

        while self.running:
            self.stats["ticks"] += 1
            try:
                await self.run_once()
            except Exception:
                self.stats["errors"] += 1
                logger.exception(f"Error processing {self.name} data")

            if self.running:
                await asyncio.sleep(self.next_delay())

        logger.info(f"{self.name} poller stopped")


class IdolsPoller(AlignedPoller):
    """Minute-aligned poller for the idols board and auxiliary feeds."""

    name = "idols"

    def __init__(
        self,
        client: FeedClient,
        store: MergeStore,
        endpoints: EndpointConfig,
        period_seconds: float = 60,
        clock: Clock = utc_now,
    ):
        super().__init__(period_seconds, clock)
        self.client = client
        self.store = store
        self.endpoints = endpoints

    async def run_once(self) -> dict[str, bool]:
        """Poll every configured feed; one feed's failure never blocks another.

        Returns:
            Feed name -> whether it was fetched and stored
        """
        feeds: list[tuple[str, Callable[[], Awaitable[None]]]] = [
            ("idols", self.poll_idols),
        ]
        if self.endpoints.tributes_url:
            feeds.append(("tributes", lambda: self.poll_snapshot(
                EntityKind.TRIBUTES, self.endpoints.tributes_url)))
        if self.endpoints.global_events_url:
            feeds.append(("global events", lambda: self.poll_snapshot(
                EntityKind.GLOBAL_EVENTS, self.endpoints.global_events_url)))
        for url in self.endpoints.script_urls:
            feeds.append((url, lambda url=url: self.poll_script(url)))

        results = {}
        for name, poll in feeds:
            try:
                await poll()
                results[name] = True
            except Exception as e:
                self.stats["errors"] += 1
                results[name] = False
                logger.error(f"Error processing {name} data: {e!r}")
        return results

    async def poll_idols(self) -> Update:
        """Fetch the idols board, merge it, and record its hourly snapshot."""
        payload = await self.client.get_json(self.endpoints.idols_url)
        update = Update.observe(EntityKind.IDOLS, payload, self.clock())

        await self.store.merge(EntityKind.IDOLS, [update])
        inserted = await self.store.save_idols_hourly(IdolsHourly.from_update(update))

        logger.info(
            f"Saved idols update {update.identity} at {update.first_seen.isoformat()}"
            f"{' (new hour)' if inserted else ''}"
        )
        return update

    async def poll_snapshot(self, kind: EntityKind, url: str) -> Update:
        """Fetch a whole-document feed and merge it as one update."""
        payload = await self.client.get_json(url)
        update = Update.observe(kind, payload, self.clock())
        await self.store.merge(kind, [update])
        logger.info(f"Saved {kind.value} {update.identity} at {update.first_seen.isoformat()}")
        return update

    async def poll_script(self, url: str) -> Update:
        """Fetch a script asset and merge its text keyed by URL."""
        content = await self.client.get_text(url)
        update = Update.observe(EntityKind.SCRIPT, content, self.clock(), key=url)
        await self.store.merge(EntityKind.SCRIPT, [update])
        logger.info(f"Saved script {url} ({update.identity})")
        return update


@dataclass
class PlayerFetchResult:
    """Outcome of one chunked player fetch cycle."""

    requested: int = 0
    chunks: int = 0
    saved: int = 0
    failed_chunks: list[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed_chunks


class PlayerPoller(AlignedPoller):
    """Five-minute-aligned poller for the players of the current rosters."""

    name = "player"

    def __init__(
        self,
        client: FeedClient,
        store: MergeStore,
        players_url: str,
        roster: RosterSource,
        chunk_size: int = 100,
        period_seconds: float = 300,
        roster_wait_seconds: float = 1.0,
        clock: Clock = utc_now,
    ):
        """Initialize the player poller.

        Args:
            client: Feed client
            store: Merge store
            players_url: Endpoint accepting ``ids=<comma separated>``
            roster: Returns the latest team updates, or None before the first
            chunk_size: Max ids per request
            period_seconds: Tick period
            roster_wait_seconds: Readiness check interval before the first tick
            clock: Source of observation instants
        """
        super().__init__(period_seconds, clock)
        self.client = client
        self.store = store
        self.players_url = players_url
        self.roster = roster
        self.chunk_size = chunk_size
        self.roster_wait_seconds = roster_wait_seconds

    async def before_first_tick(self) -> None:
        await self.wait_for_roster()

    async def wait_for_roster(self) -> None:
        """Block until the stream has produced a roster snapshot."""
        while self.roster() is None:
            await asyncio.sleep(self.roster_wait_seconds)
        logger.info("Roster available, starting player polling")

    async def run_once(self) -> PlayerFetchResult:
        teams = self.roster()
        if teams is None:
            return PlayerFetchResult()
        return await self.fetch_players(teams)

    async def fetch_players(self, teams: Sequence[Update]) -> PlayerFetchResult:
        """Fetch and merge every lineup/rotation player of ``teams``.

        Each chunk is fetched and written on its own; a failed chunk is
        logged and skipped.
        """
        ids = UpdateExtractor.player_ids(teams)
        chunks = chunked(ids, self.chunk_size)
        result = PlayerFetchResult(requested=len(ids), chunks=len(chunks))

        for index, chunk in enumerate(chunks):
            try:
                payload = await self.client.get_json(
                    self.players_url, params={"ids": ",".join(chunk)}
                )
                observed_at = self.clock()
                updates = UpdateExtractor.player_updates(payload, observed_at)
                await self.store.merge(EntityKind.PLAYER, updates)
                result.saved += len(updates)
                logger.info(f"Saved {len(updates)} players at {observed_at.isoformat()}")
            except Exception as e:
                self.stats["errors"] += 1
                result.failed_chunks.append(index)
                logger.error(
                    f"Error processing player chunk {index + 1}/{len(chunks)} "
                    f"({len(chunk)} ids): {e!r}"
                )

        return result
