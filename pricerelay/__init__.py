"""pricerelay package.

Relay one upstream price stream to many WebSocket subscribers and aggregate
the recent history into OHLCV candles on demand.

Public API
----------
* ``PriceRelay``         – service object owning the buffer, hub and feed.
* ``Tick`` / ``Candle``  – value types.
* ``PriceHistoryBuffer`` – bounded, thread-safe tick history.
* ``aggregate``          – pure tick-to-candle aggregation.
* ``BroadcastHub``       – best-effort subscriber fan-out.
* ``UpstreamFeedClient`` – reconnecting upstream subscription.
* ``configure_logging`` / ``trace`` – logging helpers.
"""

import logging as _logging
from importlib import metadata as _metadata

# Logging helpers first so every module below logs through a configured root.
from .logging_utils import configure_logging, trace

from .aggregator import aggregate
from .events import PriceHistoryBuffer, Tick
from .feed import UpstreamFeedClient
from .hub import BroadcastHub
from .models import Candle
from .service import PriceRelay
from .settings import Settings, load_settings

__all__ = [
    "PriceRelay",
    "Tick",
    "Candle",
    "PriceHistoryBuffer",
    "aggregate",
    "BroadcastHub",
    "UpstreamFeedClient",
    "Settings",
    "load_settings",
    "configure_logging",
    "trace",
]

# --------------------------------------------------------------------
# Single-source versioning – read from the installed metadata, falling back
# to *pyproject.toml* when running from a source checkout.
# --------------------------------------------------------------------

try:
    __version__: str = _metadata.version(__name__)
except _metadata.PackageNotFoundError:  # pragma: no cover – dev environment only
    import pathlib as _pl
    import tomllib as _tomllib

    _toml_path = _pl.Path(__file__).resolve().parents[1] / "pyproject.toml"
    if _toml_path.exists():
        with _toml_path.open("rb") as _fp:
            __version__ = _tomllib.load(_fp)["project"]["version"]
    else:
        __version__ = "0.0.0.dev0"

# --------------------------------------------------------------------
# Configure logging on first import unless the host application already
# attached handlers to the root logger.
# --------------------------------------------------------------------

if not _logging.getLogger().handlers:
    try:
        configure_logging()
    except OSError:  # pragma: no cover – read-only working directory
        _logging.basicConfig(level=_logging.INFO)
