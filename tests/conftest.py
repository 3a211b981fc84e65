"""
Global test fixtures to isolate logging side-effects.
"""

import logging

import pytest


@pytest.fixture(autouse=True)
def disable_logging() -> None:
    """Drop root handlers around each test so nothing writes to logs/."""
    root = logging.getLogger()
    for h in list(root.handlers):
        h.close()
    root.handlers.clear()
    root.setLevel(logging.CRITICAL)
    yield
    for h in list(root.handlers):
        h.close()
    root.handlers.clear()
