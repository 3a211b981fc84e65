"""Project-wide defaults for the upstream feed and the relay."""

# Finnhub trade stream; the API key travels as the ``token`` query parameter.
DEFAULT_FEED_URL = "wss://ws.finnhub.io"
DEFAULT_SYMBOL = "BINANCE:BTCUSDT"

DEFAULT_BUFFER_CAPACITY = 1000
DEFAULT_RECONNECT_DELAY = 5.0
DEFAULT_SUBSCRIBER_QUEUE = 64

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080

DEFAULT_CANDLE_INTERVAL = "1m"
DEFAULT_CANDLE_LOOKBACK = "24h"

__all__ = [
    "DEFAULT_FEED_URL",
    "DEFAULT_SYMBOL",
    "DEFAULT_BUFFER_CAPACITY",
    "DEFAULT_RECONNECT_DELAY",
    "DEFAULT_SUBSCRIBER_QUEUE",
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "DEFAULT_CANDLE_INTERVAL",
    "DEFAULT_CANDLE_LOOKBACK",
]
