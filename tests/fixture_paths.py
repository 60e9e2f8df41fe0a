"""Shared fixture path helpers for tests."""

from __future__ import annotations

from pathlib import Path

FIXTURES_ROOT = Path(__file__).resolve().parent / "fixtures"


def fixture_path(relative_path: str) -> Path:
    """Resolve a fixture path relative to tests/fixtures."""
    return FIXTURES_ROOT / relative_path


def raw_extracts_uri() -> str:
    """Return the source URI of the bundled bronze extract files.

    Returns:
        Absolute directory path usable as ``source_uri``.
    """
    return str(fixture_path("raw_extracts"))
