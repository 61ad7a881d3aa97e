"""Derived aggregates built from the update log.

- GameProjection: per-game current state folded from game updates
- IdolsHourly: idol board membership per hour of first observation
"""

from .projection import GameAggregate, GameProjection, IdolsHourly, hour_bucket

__all__ = [
    "GameAggregate",
    "GameProjection",
    "IdolsHourly",
    "hour_bucket",
]
