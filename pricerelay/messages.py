"""Wire message helpers for the upstream feed and downstream subscribers."""

from __future__ import annotations

from .events import Tick
from .json_utils import to_json

__all__ = ["subscribe_msg", "unsubscribe_msg", "price_update_msg"]


def subscribe_msg(symbol: str) -> str:
    """Return the upstream subscription request for *symbol*."""
    return to_json({"type": "subscribe", "symbol": symbol})


def unsubscribe_msg(symbol: str) -> str:
    return to_json({"type": "unsubscribe", "symbol": symbol})


def price_update_msg(tick: Tick) -> str:
    """Return the ``price_update`` message pushed to subscribers."""
    return to_json(
        {
            "type": "price_update",
            "data": {
                "price": tick.price,
                "volume": tick.volume,
                "timestamp": tick.timestamp_ms,
            },
        }
    )
