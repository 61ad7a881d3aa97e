"""Stream worker for the push-style event feed.

Holds one streaming connection at a time and hands every delivered payload to
a handler, strictly one after another in delivery order. The worker never
gives up: connection loss is logged and followed by a reconnect, and handler
failures are logged per payload.
"""

import asyncio
import logging
from contextlib import aclosing
from typing import Awaitable, Callable, Optional

from datablase.ingestion.client import FeedClient

logger = logging.getLogger(__name__)

LineHandler = Callable[[str], Awaitable[None]]


def decode_event_line(line: str) -> Optional[str]:
    """Extract the payload text from one feed line.

    Blank lines and ``:`` comments (keep-alives) carry no payload; a
    server-sent-event ``data:`` prefix is stripped.
    """
    line = line.strip()
    if not line or line.startswith(":"):
        return None
    if line.startswith("data:"):
        line = line[len("data:"):].strip()
    return line or None


class EventStream:
    """Long-lived consumer of a line-delimited streaming endpoint.

    Usage:
        >>> stream = EventStream(FeedClient())
        >>> await stream.stream("https://www.blaseball.com/events/streamData", handle)
    """

    def __init__(self, client: FeedClient, reconnect_delay: float = 5.0):
        """Initialize the stream worker.

        Args:
            client: Feed client used to open connections
            reconnect_delay: Seconds to wait before reconnecting
        """
        self.client = client
        self.reconnect_delay = reconnect_delay
        self.running = True

        self.stats = {
            "connections": 0,
            "payloads": 0,
            "handler_errors": 0,
            "disconnects": 0,
        }

    def stop(self) -> None:
        """Stop after the current payload; no further reconnects."""
        self.running = False

    async def stream(self, url: str, handler: LineHandler) -> None:
        """Consume ``url`` until stopped or cancelled.

        Args:
            url: Streaming endpoint
            handler: Awaited once per payload, never concurrently
        """
        while self.running:
            self.stats["connections"] += 1
            try:
                await self._consume(url, handler)
                if self.running:
                    logger.warning(f"Stream {url} closed by server")
            except Exception as e:
                logger.error(f"Stream {url} disconnected: {e!r}")

            self.stats["disconnects"] += 1
            if self.running:
                await asyncio.sleep(self.reconnect_delay)

        logger.info(f"Stream worker for {url} stopped")

    async def _consume(self, url: str, handler: LineHandler) -> None:
        async with aclosing(self.client.stream_lines(url)) as lines:
            async for line in lines:
                if not self.running:
                    return

                payload = decode_event_line(line)
                if payload is None:
                    continue

                self.stats["payloads"] += 1
                try:
                    await handler(payload)
                except Exception:
                    self.stats["handler_errors"] += 1
                    logger.exception("Error processing stream line")
