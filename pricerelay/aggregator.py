from __future__ import annotations

"""Tick-to-candle aggregation.

``aggregate()`` is a pure function: it reads a sequence of ticks and returns
OHLCV candles for fixed-width buckets of a half-open window.  Buckets without
ticks are left out of the result, so the series can contain time gaps.

Ticks are expected in arrival order with non-decreasing timestamps.  Each tick
lands in the bucket its timestamp falls into; within a bucket *open* and
*close* follow arrival order.
"""

from typing import Dict, Iterable, List

from .events import Tick
from .models import Candle

__all__ = ["aggregate"]


def aggregate(
    ticks: Iterable[Tick],
    interval_ms: int,
    window_start_ms: int,
    window_end_ms: int,
) -> List[Candle]:
    """Return candles for ``[window_start_ms, window_end_ms)`` in ascending order.

    A non-positive *interval_ms* or an empty/inverted window yields ``[]``.

    Example
    -------
    >>> ticks = [Tick(100, 1, 0), Tick(105, 1, 10_000), Tick(98, 2, 40_000)]
    >>> aggregate(ticks, 60_000, 0, 60_000)
    [Candle(period_start_ms=0, open=100, high=105, low=98, close=98, volume=4)]
    """
    if interval_ms <= 0 or window_end_ms <= window_start_ms:
        return []

    buckets: Dict[int, List[Tick]] = {}
    for tick in ticks:
        ts = tick.timestamp_ms
        if ts < window_start_ms or ts >= window_end_ms:
            continue
        idx = (ts - window_start_ms) // interval_ms
        buckets.setdefault(idx, []).append(tick)

    candles: List[Candle] = []
    for idx in sorted(buckets):
        members = buckets[idx]
        prices = [t.price for t in members]
        candles.append(
            Candle(
                period_start_ms=window_start_ms + idx * interval_ms,
                open=members[0].price,
                high=max(prices),
                low=min(prices),
                close=members[-1].price,
                volume=sum(t.volume for t in members),
            )
        )
    return candles
