"""Unit tests for raw field normalizers."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal

from transforms.field_normalizers import (
    clean_text,
    domain_text,
    parse_amount,
    parse_bool_text,
    parse_code_list,
    parse_count,
    parse_country_code,
    parse_country_code_or_global,
    parse_date,
    parse_datetime,
    parse_email,
    parse_gender,
    parse_int,
    parse_local_price,
    parse_postal_code,
    parse_price,
    parse_rating,
    parse_time,
    round_amount,
    upper_text_or,
)


def test_clean_text_turns_blank_into_none() -> None:
    """Whitespace-only text should normalize to null."""
    assert [clean_text("  "), clean_text(None), clean_text(" Bob ")] == [None, None, "Bob"]


def test_parse_email_requires_at_and_dot() -> None:
    """Emails without '@' or '.' should be dropped; valid ones lower-cased."""
    assert [parse_email("Alice@Example.com"), parse_email("carol-at-example")] == [
        "alice@example.com",
        None,
    ]


def test_parse_gender_maps_unknown_text_to_na() -> None:
    """Gender text should map to M, F, or N/A."""
    assert [parse_gender("female"), parse_gender(" MALE "), parse_gender("x")] == [
        "F",
        "M",
        "N/A",
    ]


def test_parse_bool_text_accepts_only_true_false() -> None:
    """Boolean text is case-insensitive and anything else is null."""
    assert [parse_bool_text("true"), parse_bool_text("FALSE"), parse_bool_text("1")] == [
        True,
        False,
        None,
    ]


def test_country_code_parsers() -> None:
    """Country codes need two letters; channels also accept GLOBAL."""
    assert [
        parse_country_code("th"),
        parse_country_code("USA"),
        parse_country_code_or_global("global"),
    ] == ["TH", None, "GLOBAL"]


def test_parse_postal_code_rejects_symbols() -> None:
    """Postal codes allow letters, digits, and hyphens only."""
    assert [parse_postal_code("10330"), parse_postal_code("83@120")] == ["10330", None]


def test_parse_code_list_normalizes_separators() -> None:
    """Spaces around commas should be removed after upper-casing."""
    assert parse_code_list("standard , express") == "STANDARD,EXPRESS"


def test_parse_int_accepts_integral_decimals() -> None:
    """Integral decimal text parses and fractional text is rejected."""
    assert [parse_int("3.0"), parse_int("3.5"), parse_int("abc")] == [3, None, None]


def test_parse_price_handles_missing_and_negative_values() -> None:
    """Missing prices become zero while negative prices become null."""
    assert [parse_price(None), parse_price("-5.00"), parse_price("10.005")] == [
        Decimal("0.00"),
        None,
        Decimal("10.01"),
    ]


def test_parse_local_price_enforces_open_lower_bound() -> None:
    """Local prices must be above zero and within the ceiling."""
    assert [
        parse_local_price("0"),
        parse_local_price("1000000"),
        parse_local_price("850"),
    ] == [None, None, Decimal("850.00")]


def test_parse_rating_clamps_high_values() -> None:
    """Ratings above five clamp to 5.0 and negatives become null."""
    assert [parse_rating("7"), parse_rating("-1"), parse_rating("4.56")] == [
        Decimal("5.0"),
        None,
        Decimal("4.6"),
    ]


def test_parse_count_defaults_to_zero() -> None:
    """Missing or negative counts should become zero."""
    assert [parse_count(None), parse_count("-3"), parse_count("60")] == [0, 0, 60]


def test_temporal_parsers() -> None:
    """Dates, datetimes, and times parse from ISO text."""
    assert (
        parse_date("2024-03-01T10:15:00"),
        parse_datetime("2024-03-01T17:15:00+07:00"),
        parse_time("10:15:00"),
        parse_date("03/01/2024"),
    ) == (date(2024, 3, 1), datetime(2024, 3, 1, 10, 15), time(10, 15), None)


def test_round_amount_rounds_half_away_from_zero() -> None:
    """Amounts should round half up to cents."""
    assert [round_amount(Decimal("2.345")), parse_amount("-2.345")] == [
        Decimal("2.35"),
        Decimal("-2.35"),
    ]


def test_domain_and_default_normalizers() -> None:
    """Domain text drops unknown values and defaults fill nulls."""
    normalize_type = domain_text(("EXPRESS", "STANDARD"))
    normalize_brand = upper_text_or("NO_BRAND")

    assert [normalize_type("express"), normalize_type("drone"), normalize_brand("")] == [
        "EXPRESS",
        None,
        "NO_BRAND",
    ]
