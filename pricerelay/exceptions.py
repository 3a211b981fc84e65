from __future__ import annotations

"""Custom exceptions used across :mod:`pricerelay`."""


class InvalidMessageError(ValueError):
    """Raised when an upstream payload cannot be turned into ticks."""
