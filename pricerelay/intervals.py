from __future__ import annotations

"""Interval utilities for candle resolutions and lookback windows.

``to_millis()`` accepts second/minute/hour/day/week aliases such as ``"30s"``,
``"5m"``, ``"1h"`` or ``"1d"``.  A bare number is read as minutes, so ``"15"``
equals ``"15m"``.
"""

from typing import Dict

__all__ = ["to_millis", "UNIT_MILLIS"]

UNIT_MILLIS: Dict[str, int] = {
    "s": 1_000,
    "m": 60_000,
    "h": 3_600_000,
    "d": 86_400_000,
    "w": 604_800_000,
}


def to_millis(raw: str) -> int:
    """Return the length of *raw* interval in milliseconds."""

    cleaned = raw.strip().lower()
    if cleaned.isdigit():
        cleaned += "m"
    unit = cleaned[-1:]
    count = cleaned[:-1]
    if unit not in UNIT_MILLIS or not count.isdigit() or int(count) <= 0:
        raise ValueError(f"Unsupported interval: {raw}")
    return int(count) * UNIT_MILLIS[unit]
