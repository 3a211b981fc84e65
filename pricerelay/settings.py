from __future__ import annotations

"""Runtime settings read from environment variables.

The CLI loads a local ``.env`` file first (``python-dotenv``), so the same
variables can live there during development.
"""

import math
import os
from dataclasses import dataclass
from typing import Callable, Mapping, TypeVar
from urllib.parse import urlencode, urlsplit

from .constants import (
    DEFAULT_BUFFER_CAPACITY,
    DEFAULT_CANDLE_INTERVAL,
    DEFAULT_CANDLE_LOOKBACK,
    DEFAULT_FEED_URL,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_RECONNECT_DELAY,
    DEFAULT_SUBSCRIBER_QUEUE,
    DEFAULT_SYMBOL,
)
from .intervals import to_millis

__all__ = ["Settings", "load_settings"]

T = TypeVar("T")


@dataclass(frozen=True)
class Settings:
    feed_url: str = DEFAULT_FEED_URL
    api_key: str = ""
    symbol: str = DEFAULT_SYMBOL
    buffer_capacity: int = DEFAULT_BUFFER_CAPACITY
    reconnect_delay: float = DEFAULT_RECONNECT_DELAY
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    subscriber_queue: int = DEFAULT_SUBSCRIBER_QUEUE
    candle_interval_ms: int = to_millis(DEFAULT_CANDLE_INTERVAL)
    candle_lookback_ms: int = to_millis(DEFAULT_CANDLE_LOOKBACK)

    @property
    def upstream_url(self) -> str:
        """Feed URL with the API key appended as the ``token`` parameter."""
        if not self.api_key:
            return self.feed_url
        sep = "&" if urlsplit(self.feed_url).query else "?"
        return f"{self.feed_url}{sep}{urlencode({'token': self.api_key})}"


def _read(env: Mapping[str, str], name: str, default: T, cast: Callable[[str], T]) -> T:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise ValueError(f"{name}: invalid value {raw!r} ({exc})") from exc


def _positive(cast: Callable[[str], T]) -> Callable[[str], T]:
    def _convert(raw: str) -> T:
        val = cast(raw)
        if not math.isfinite(val):  # type: ignore[arg-type]
            raise ValueError("must be finite")
        if val <= 0:  # type: ignore[operator]
            raise ValueError("must be positive")
        return val

    return _convert


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Return :class:`Settings` built from *env* (defaults to ``os.environ``)."""
    env = os.environ if env is None else env
    return Settings(
        feed_url=_read(env, "PRICERELAY_FEED_URL", DEFAULT_FEED_URL, str),
        api_key=_read(env, "FINNHUB_API_KEY", "", str),
        symbol=_read(env, "PRICERELAY_SYMBOL", DEFAULT_SYMBOL, str),
        buffer_capacity=_read(
            env, "PRICERELAY_BUFFER_CAPACITY", DEFAULT_BUFFER_CAPACITY, _positive(int)
        ),
        reconnect_delay=_read(
            env, "PRICERELAY_RECONNECT_DELAY", DEFAULT_RECONNECT_DELAY, _positive(float)
        ),
        host=_read(env, "PRICERELAY_HOST", DEFAULT_HOST, str),
        port=_read(env, "PRICERELAY_PORT", DEFAULT_PORT, int),
        subscriber_queue=_read(
            env, "PRICERELAY_SUBSCRIBER_QUEUE", DEFAULT_SUBSCRIBER_QUEUE, _positive(int)
        ),
        candle_interval_ms=_read(
            env, "PRICERELAY_CANDLE_INTERVAL", to_millis(DEFAULT_CANDLE_INTERVAL), to_millis
        ),
        candle_lookback_ms=_read(
            env, "PRICERELAY_CANDLE_LOOKBACK", to_millis(DEFAULT_CANDLE_LOOKBACK), to_millis
        ),
    )
