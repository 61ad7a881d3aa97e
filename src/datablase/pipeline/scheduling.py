"""Wall-clock aligned scheduling helpers."""

from datetime import datetime, timedelta
from typing import Sequence, TypeVar

T = TypeVar("T")


def seconds_until_next_boundary(now: datetime, period: timedelta | float) -> float:
    """Seconds from ``now`` to the next multiple of ``period`` past midnight.

    Boundaries are counted in ``now``'s own clock. At an exact boundary the
    full period is returned, so a worker that just ran waits a whole cycle.

    Args:
        now: Current instant
        period: Tick period (timedelta or seconds), dividing a day evenly

    Returns:
        Delay in seconds, in (0, period]

    Example:
        >>> seconds_until_next_boundary(datetime(2020, 8, 1, 10, 2, 17, 500000), 300)
        162.5
    """
    period_seconds = period.total_seconds() if isinstance(period, timedelta) else float(period)
    if period_seconds <= 0:
        raise ValueError(f"period must be positive, got {period_seconds}")

    # Integer microseconds keep boundary arithmetic exact.
    period_us = round(period_seconds * 1_000_000)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    elapsed_us = ((now - midnight) // timedelta(microseconds=1)) % period_us
    return (period_us - elapsed_us) / 1_000_000


def next_boundary(now: datetime, period: timedelta | float) -> datetime:
    """The instant of the next tick after ``now``."""
    return now + timedelta(seconds=seconds_until_next_boundary(now, period))


def chunked(items: Sequence[T], size: int) -> list[list[T]]:
    """Split items into ordered chunks of at most ``size`` elements."""
    if size < 1:
        raise ValueError(f"chunk size must be positive, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]
