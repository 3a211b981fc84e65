"""pricerelay.logging_utils – project-wide logging helpers.

Provides:

1.  A custom **TRACE** level (numeric value 5) and ``Logger.trace``.
2.  ``configure_logging()`` which installs three handlers on the root logger:
    • console output through ``rich.logging.RichHandler``;
    • a human-readable file ``logs/pricerelay-YYYYMMDD-HHMMSS.log``;
    • a ``JsonLinesHandler`` mirroring every record into the matching
      ``.jsonl`` file.
3.  The ``@trace`` decorator logging function entry/exit at TRACE level.

Every record carries a ``code_path`` attribute.  Call sites pass it through
``extra={"code_path": ...}``; records without one get the source path.
"""

from __future__ import annotations

import functools
import json
import logging
import os
import shutil
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Tuple, TypeVar

from rich.logging import RichHandler

__all__ = [
    "TRACE_LEVEL",
    "JsonLinesHandler",
    "configure_logging",
    "trace",
]

TRACE_LEVEL = 5
LOG_PREFIX = "pricerelay"
KEEP_LOG_PAIRS = 10

if logging.getLevelName(TRACE_LEVEL) != "TRACE":
    logging.addLevelName(TRACE_LEVEL, "TRACE")


def _trace(self: logging.Logger, msg: str, *args: Any, **kwargs: Any) -> None:
    """`Logger.trace(msg, *args, **kwargs)` convenience method."""

    if self.isEnabledFor(TRACE_LEVEL):
        self._log(TRACE_LEVEL, msg, args, **kwargs)  # type: ignore[attr-defined]


if not hasattr(logging.Logger, "trace"):
    logging.Logger.trace = _trace  # type: ignore[attr-defined]


class _EnsureCodePathFilter(logging.Filter):
    """Default ``record.code_path`` to the emitting source file."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401 – logging callback
        if not hasattr(record, "code_path"):
            record.code_path = record.pathname  # type: ignore[attr-defined]
        return True


class JsonLinesHandler(logging.Handler):
    """Write one JSON object per record."""

    def __init__(self, file_path: Path) -> None:
        super().__init__(level=logging.NOTSET)
        self._fp = open(file_path, "a", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:  # noqa: D401 – logging callback
        try:
            log_obj: Dict[str, Any] = {
                "ts_epoch": record.created,
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
                "code_path": getattr(record, "code_path", record.pathname),
            }
            if record.exc_info:
                exc_type, exc_value, tb = record.exc_info
                log_obj["exc_type"] = exc_type.__name__ if exc_type else None
                log_obj["exc_msg"] = str(exc_value) if exc_value else None
                log_obj["exc_trace"] = "".join(
                    traceback.format_exception(exc_type, exc_value, tb)
                ).rstrip()

            self.acquire()
            try:
                self._fp.write(json.dumps(log_obj, separators=(",", ":"), ensure_ascii=False) + "\n")
                self._fp.flush()
            finally:
                self.release()
        except Exception:  # noqa: BLE001 – must not propagate
            self.handleError(record)

    def close(self) -> None:  # noqa: D401 – logging callback
        try:
            self._fp.close()
        finally:
            super().close()


def _purge_old_logs(log_dir: Path, keep: int = KEEP_LOG_PAIRS) -> None:
    """Keep only the newest *keep* ``.log``/``.jsonl`` pairs."""

    files = sorted(
        log_dir.glob(f"{LOG_PREFIX}-*.log"), key=lambda p: p.stat().st_mtime, reverse=True
    )
    for stale in files[keep:]:
        stale.unlink(missing_ok=True)
        stale.with_suffix(".jsonl").unlink(missing_ok=True)


def _point_latest(link: Path, target: Path) -> None:
    """Refresh ``logs/latest.*`` to the current file (copy where symlinks fail)."""

    if link.exists() or link.is_symlink():
        link.unlink(missing_ok=True)
    try:
        link.symlink_to(target.name)
    except OSError:
        shutil.copy2(target, link)


def configure_logging(
    *, debug: bool = False, debug_module: str | None = None, log_dir: Path | None = None
) -> Tuple[Path, Path]:
    """Set up project-wide logging.

    ``PRICERELAY_LOG_LEVEL`` overrides the root level (``TRACE``, ``DEBUG``,
    ``INFO`` ...); otherwise *debug* selects TRACE and the default is INFO.

    Returns
    -------
    tuple(Path, Path)
        Paths to the newly created ``.log`` and ``.jsonl`` files.
    """

    log_dir = log_dir or Path("logs")
    log_dir.mkdir(parents=True, exist_ok=True)

    stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    log_path = log_dir / f"{LOG_PREFIX}-{stamp}.log"
    json_path = log_dir / f"{LOG_PREFIX}-{stamp}.jsonl"

    _purge_old_logs(log_dir)

    env_level = os.getenv("PRICERELAY_LOG_LEVEL", "").strip().upper()
    if env_level == "TRACE":
        root_level = TRACE_LEVEL
    elif env_level and isinstance(logging.getLevelName(env_level), int):
        root_level = logging.getLevelName(env_level)
    else:
        root_level = TRACE_LEVEL if debug else logging.INFO

    console = RichHandler(level=root_level, rich_tracebacks=False, omit_repeated_times=False)

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d - %(message)s"
        )
    )
    json_handler = JsonLinesHandler(json_path)

    _point_latest(log_dir / "latest.log", log_path)
    _point_latest(log_dir / "latest.jsonl", json_path)

    root_logger = logging.getLogger()
    for old in root_logger.handlers:
        old.close()
    root_logger.handlers.clear()
    root_logger.setLevel(root_level)
    for handler in (console, file_handler, json_handler):
        handler.addFilter(_EnsureCodePathFilter())
        root_logger.addHandler(handler)

    if debug_module:
        logging.getLogger(debug_module).setLevel(logging.DEBUG)

    return log_path, json_path


F = TypeVar("F", bound=Callable[..., Any])


def trace(func: F) -> F:
    """Decorator that logs function entry / exit at *TRACE* level."""

    logger = logging.getLogger(func.__module__)
    code_path = func.__code__.co_filename

    @functools.wraps(func)
    def _wrapper(*args: Any, **kwargs: Any) -> Any:
        logger.log(TRACE_LEVEL, f"→ {func.__qualname__}()", extra={"code_path": code_path})
        try:
            return func(*args, **kwargs)
        finally:
            logger.log(TRACE_LEVEL, f"← {func.__qualname__}()", extra={"code_path": code_path})

    return _wrapper  # type: ignore[return-value]
