"""Ingestion pipeline for the datablase.

Key Components:
- EventStream: consumes the push feed, one payload at a time, reconnecting forever
- IdolsPoller / PlayerPoller: wall-clock aligned poll workers
- UpdateExtractor: finds schedule/teams collections and emits typed updates
- IngestDaemon: runs every worker against one merge store

Architecture:
    streamData ──> EventStream ──> UpdateExtractor ──┐
    getIdols (1 min) ──> IdolsPoller ─────────────────┼──> MergeStore ──> games
    players?ids= (5 min) ──> PlayerPoller ────────────┘
"""

from datablase.pipeline.extractors import UpdateExtractor
from datablase.pipeline.scheduling import chunked, seconds_until_next_boundary
from datablase.pipeline.stream import EventStream
from datablase.pipeline.pollers import IdolsPoller, PlayerPoller
from datablase.pipeline.daemon import IngestDaemon

__all__ = [
    "UpdateExtractor",
    "chunked",
    "seconds_until_next_boundary",
    "EventStream",
    "IdolsPoller",
    "PlayerPoller",
    "IngestDaemon",
]
