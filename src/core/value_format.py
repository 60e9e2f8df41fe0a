"""Text rendering of typed warehouse values.

Issue values, rendered keys, and audit rows share one formatting so the
same value always prints the same way.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Sequence

from core.constants import KEY_SEPARATOR
from core.types import EntityRecord


def render_value(value: Any) -> str | None:
    """Render one value as text.

    Args:
        value: Typed column value.

    Returns:
        ``None`` for nulls; ``YYYY-MM-DD HH:MM:SS`` for datetimes,
        ``YYYY-MM-DD`` for dates, fixed-point text for decimals,
        ``true``/``false`` for booleans, else ``str(value)``.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def render_key(record: EntityRecord, key_columns: Sequence[str]) -> str | None:
    """Render a natural key; composite parts are joined with ``|``.

    Returns ``None`` when every key part is null.
    """
    parts = [render_value(record.get(column)) for column in key_columns]
    if all(part is None for part in parts):
        return None
    return KEY_SEPARATOR.join("" if part is None else part for part in parts)
