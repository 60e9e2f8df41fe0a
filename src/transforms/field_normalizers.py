"""Per-column field normalizers for raw extract values.

Every normalizer accepts the loosely typed raw value (text or ``None``)
and returns a cleaned value, or ``None`` when the input fails its rule.
Normalizers never raise for bad but well-formed input.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Callable

from core.constants import GLOBAL_COUNTRY_CODE, MAX_LOCAL_PRICE, MAX_RATING

_COUNTRY_CODE_PATTERN = re.compile(r"^[A-Z]{2}$")
_POSTAL_CODE_PATTERN = re.compile(r"^[A-Z0-9-]{3,10}$")
_LIST_SEPARATOR_PATTERN = re.compile(r"\s*,\s*")
_GENDER_CODES = {"FEMALE": "F", "MALE": "M"}


def clean_text(raw_value: str | None) -> str | None:
    """Trim free text; blank values become ``None``."""
    if raw_value is None:
        return None
    stripped = raw_value.strip()
    return stripped or None


def upper_text(raw_value: str | None) -> str | None:
    """Trim and upper-case text."""
    cleaned = clean_text(raw_value)
    return cleaned.upper() if cleaned is not None else None


def upper_text_or(default_value: str) -> Callable[[str | None], str]:
    """Build an upper-casing normalizer that substitutes a default for nulls."""

    def _normalize(raw_value: str | None) -> str:
        normalized = upper_text(raw_value)
        return default_value if normalized is None else normalized

    return _normalize


def parse_email(raw_value: str | None) -> str | None:
    """Lower-case an email that contains both '@' and '.'."""
    cleaned = clean_text(raw_value)
    if cleaned is None or "@" not in cleaned or "." not in cleaned:
        return None
    return cleaned.lower()


def parse_gender(raw_value: str | None) -> str:
    """Map gender text to ``M``, ``F``, or ``N/A``."""
    normalized = upper_text(raw_value)
    return _GENDER_CODES.get(normalized or "", "N/A")


def parse_bool_text(raw_value: str | None) -> bool | None:
    """Coerce ``TRUE``/``FALSE`` text (any case) to a boolean."""
    normalized = upper_text(raw_value)
    if normalized == "TRUE":
        return True
    if normalized == "FALSE":
        return False
    return None


def parse_flag_text(raw_value: str | None) -> bool:
    """Treat ``TRUE`` or ``1`` as set; anything else is unset."""
    return upper_text(raw_value) in ("TRUE", "1")


def parse_country_code(raw_value: str | None) -> str | None:
    """Accept exactly two letters, returned upper-cased."""
    normalized = upper_text(raw_value)
    if normalized is None or not _COUNTRY_CODE_PATTERN.match(normalized):
        return None
    return normalized


def parse_country_code_or_global(raw_value: str | None) -> str | None:
    """Accept a two-letter code or the literal ``GLOBAL``."""
    normalized = upper_text(raw_value)
    if normalized == GLOBAL_COUNTRY_CODE:
        return normalized
    return parse_country_code(normalized)


def parse_postal_code(raw_value: str | None) -> str | None:
    """Accept 3 to 10 upper-case letters, digits, or hyphens."""
    normalized = upper_text(raw_value)
    if normalized is None or not _POSTAL_CODE_PATTERN.match(normalized):
        return None
    return normalized


def parse_code_list(raw_value: str | None) -> str | None:
    """Upper-case a comma-separated list and drop spaces around commas."""
    normalized = upper_text(raw_value)
    if normalized is None:
        return None
    return _LIST_SEPARATOR_PATTERN.sub(",", normalized)


def split_code_list(value: str | None) -> tuple[str, ...]:
    """Split a normalized code list into non-empty items."""
    if not value:
        return ()
    return tuple(item for item in value.split(",") if item)


def parse_decimal(raw_value: str | None) -> Decimal | None:
    """Parse a finite decimal number."""
    cleaned = clean_text(raw_value)
    if cleaned is None:
        return None
    try:
        parsed = Decimal(cleaned)
    except InvalidOperation:
        return None
    return parsed if parsed.is_finite() else None


def parse_int(raw_value: str | None) -> int | None:
    """Parse an integer, accepting integral decimal text such as ``3.0``."""
    parsed = parse_decimal(raw_value)
    if parsed is None or parsed != parsed.to_integral_value():
        return None
    return int(parsed)


def parse_date(raw_value: str | None) -> date | None:
    """Parse an ISO date, or the date part of an ISO datetime."""
    cleaned = clean_text(raw_value)
    if cleaned is None:
        return None
    try:
        return date.fromisoformat(cleaned[:10])
    except ValueError:
        return None


def parse_datetime(raw_value: str | None) -> datetime | None:
    """Parse an ISO datetime into a naive UTC value.

    A bare date parses as midnight. Offsets are converted to UTC.
    """
    cleaned = clean_text(raw_value)
    if cleaned is None:
        return None
    try:
        parsed = datetime.fromisoformat(cleaned)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_time(raw_value: str | None) -> time | None:
    """Parse an ISO time of day."""
    cleaned = clean_text(raw_value)
    if cleaned is None:
        return None
    try:
        return time.fromisoformat(cleaned)
    except ValueError:
        return None


def round_amount(value: Decimal | None, places: int = 2) -> Decimal | None:
    """Round half away from zero to a fixed number of places."""
    if value is None:
        return None
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def parse_amount(raw_value: str | None) -> Decimal | None:
    """Parse a money amount rounded to cents."""
    return round_amount(parse_decimal(raw_value))


def parse_price(raw_value: str | None) -> Decimal | None:
    """Parse a catalog price: missing becomes 0, negative becomes ``None``."""
    parsed = parse_decimal(raw_value)
    if parsed is None:
        return round_amount(Decimal(0))
    if parsed < 0:
        return None
    return round_amount(parsed)


def parse_local_price(raw_value: str | None) -> Decimal | None:
    """Keep prices in ``(0, 999999.99]``, rounded to cents."""
    parsed = parse_decimal(raw_value)
    if parsed is None or parsed <= 0 or parsed > MAX_LOCAL_PRICE:
        return None
    return round_amount(parsed)


def parse_rating(raw_value: str | None) -> Decimal | None:
    """Clamp ratings above 5 to 5.0; negative ratings become ``None``."""
    parsed = parse_decimal(raw_value)
    if parsed is None or parsed < 0:
        return None
    if parsed > MAX_RATING:
        return MAX_RATING
    return round_amount(parsed, places=1)


def parse_count(raw_value: str | None) -> int:
    """Parse a non-negative count; missing or negative counts become 0."""
    parsed = parse_int(raw_value)
    if parsed is None or parsed < 0:
        return 0
    return parsed


def domain_text(allowed_values: tuple[str, ...]) -> Callable[[str | None], str | None]:
    """Build a normalizer keeping only upper-cased values in a fixed domain."""

    def _normalize(raw_value: str | None) -> str | None:
        normalized = upper_text(raw_value)
        return normalized if normalized in allowed_values else None

    return _normalize
