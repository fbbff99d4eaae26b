"""Exponential backoff helpers shared by delivery and broker retries."""

from __future__ import annotations

from typing import Iterator, Optional


def backoff_delays(
    count: int,
    initial: float,
    multiplier: float = 2.0,
    max_interval: Optional[float] = None,
) -> Iterator[float]:
    """Yield ``count`` delays starting at ``initial`` and growing by ``multiplier``."""

    delay = initial
    for _ in range(max(count, 0)):
        if max_interval is not None:
            yield min(delay, max_interval)
        else:
            yield delay
        delay *= multiplier
