from __future__ import annotations

import json
import math
from typing import Any, List, Mapping

from .events import Tick
from .exceptions import InvalidMessageError

__all__ = ["decode_trade_message", "decode_tick_line"]


def _number(entry: Mapping[str, Any], key: str) -> float:
    val = entry.get(key)
    # bool is an int subclass; reject it explicitly
    if isinstance(val, bool) or not isinstance(val, (int, float)):
        raise InvalidMessageError(f"field {key!r} missing or not numeric: {val!r}")
    if not math.isfinite(val):
        raise InvalidMessageError(f"field {key!r} is not finite: {val!r}")
    return float(val)


def decode_trade_message(raw: str | bytes) -> List[Tick]:
    """Return the ticks carried by one upstream frame.

    Trade frames look like ``{"type": "trade", "data": [{"p": .., "v": .., "t": ..}]}``.
    Frames of any other type (pings, acknowledgements) yield ``[]``.  A frame
    that is not JSON, or a trade frame with a malformed entry, raises
    :class:`InvalidMessageError` and contributes no ticks at all.

    Example
    -------
    >>> decode_trade_message('{"type":"trade","data":[{"p":1.5,"v":2,"t":1600000000000}]}')
    [Tick(price=1.5, volume=2.0, timestamp_ms=1600000000000)]
    """
    try:
        msg = json.loads(raw)
    except (ValueError, RecursionError) as exc:
        # JSONDecodeError and UnicodeDecodeError are ValueErrors; deep nesting
        # exhausts the parser stack
        raise InvalidMessageError(f"payload is not JSON: {exc}") from exc

    if not isinstance(msg, dict) or msg.get("type") != "trade":
        return []

    data = msg.get("data")
    if not isinstance(data, list):
        raise InvalidMessageError("trade message without a data array")

    ticks: List[Tick] = []
    for entry in data:
        if not isinstance(entry, Mapping):
            raise InvalidMessageError(f"trade entry is not an object: {entry!r}")
        price = _number(entry, "p")
        volume = _number(entry, "v")
        ts = _number(entry, "t")
        ticks.append(Tick(price=price, volume=volume, timestamp_ms=int(ts)))
    return ticks


def decode_tick_line(line: str) -> Tick:
    """Parse one JSON-lines record ``{"price", "volume", "timestamp"}`` into a tick."""
    try:
        obj = json.loads(line)
    except (ValueError, RecursionError) as exc:
        raise InvalidMessageError(f"line is not JSON: {exc}") from exc
    if not isinstance(obj, dict):
        raise InvalidMessageError(f"line is not an object: {line!r}")
    return Tick(
        price=_number(obj, "price"),
        volume=_number(obj, "volume"),
        timestamp_ms=int(_number(obj, "timestamp")),
    )
