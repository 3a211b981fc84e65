"""Ensure the runtime version string stays in sync with pyproject.toml."""

from __future__ import annotations

import pathlib as _pl
import tomllib


def _read_version_from_pyproject() -> str:
    root = _pl.Path(__file__).resolve().parents[1]
    with (root / "pyproject.toml").open("rb") as fp:
        data = tomllib.load(fp)
    return data["project"]["version"]


def test_runtime_version_matches_pyproject():
    import pricerelay

    assert pricerelay.__version__ == _read_version_from_pyproject()
