"""Pytest configuration for repository test runs."""

from __future__ import annotations

import os

import pytest

_ENV_PREFIX = "SILVERLINE_"


@pytest.fixture(autouse=True)
def isolated_silverline_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop host SILVERLINE_* settings and keep Lance output off by default."""
    for name in list(os.environ):
        if name.startswith(_ENV_PREFIX):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SILVERLINE_WRITE_LANCE", "false")
