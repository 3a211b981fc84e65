"""
Tick event model and the bounded price-history buffer.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Deque, Optional, Tuple

from .constants import DEFAULT_BUFFER_CAPACITY

__all__ = ["Tick", "PriceHistoryBuffer"]


@dataclass(frozen=True)
class Tick:
    """Single price/volume observation from the upstream feed."""

    price: float
    volume: float
    timestamp_ms: int

    @property
    def ts(self) -> datetime:
        """Timestamp as an aware UTC :class:`datetime`."""
        return datetime.fromtimestamp(self.timestamp_ms / 1000, tz=timezone.utc)


class PriceHistoryBuffer:
    """
    Ring buffer holding the last *capacity* ticks in arrival order.

    ``append`` is O(1); once full, every append evicts the oldest tick.  A
    lock guards the deque so that :meth:`snapshot` taken from another thread
    never observes a half-applied append/evict pair.
    """

    def __init__(self, capacity: int = DEFAULT_BUFFER_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._capacity: int = capacity
        self._ticks: Deque[Tick] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._ticks)

    def append(self, tick: Tick) -> None:
        with self._lock:
            self._ticks.append(tick)

    def snapshot(self) -> Tuple[Tick, ...]:
        """Return an immutable copy of the buffered ticks, oldest first."""
        with self._lock:
            return tuple(self._ticks)

    def latest(self) -> Optional[Tick]:
        """Return the most recent tick, or ``None`` while the buffer is empty."""
        with self._lock:
            return self._ticks[-1] if self._ticks else None
