from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict

__all__ = ["Candle"]


@dataclass(frozen=True)
class Candle:
    """OHLCV summary of the ticks inside one interval bucket."""

    period_start_ms: int
    open: float
    high: float
    low: float
    close: float
    volume: float

    @property
    def ts_open(self) -> datetime:
        """Bucket start as an aware UTC :class:`datetime`."""
        return datetime.fromtimestamp(self.period_start_ms / 1000, tz=timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Return the candle in the shape served to chart clients.

        Example
        -------
        >>> Candle(60_000, 1.0, 2.0, 0.5, 1.5, 3.0).to_dict()
        {'timestamp': 60000, 'open': 1.0, 'high': 2.0, 'low': 0.5, 'close': 1.5, 'volume': 3.0}
        """
        return {
            "timestamp": self.period_start_ms,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }
