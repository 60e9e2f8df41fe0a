"""Unit tests for natural-key deduplication."""

from __future__ import annotations

from datetime import date

from transforms.deduplication import SortKey, rank_candidates, select_winners


def test_select_winners_keeps_latest_record_per_key() -> None:
    """The most recent registration should win its key group."""
    records = [
        {"customer_id": 1, "registration_date": date(2023, 1, 15), "username": "old"},
        {"customer_id": 1, "registration_date": date(2023, 2, 1), "username": "new"},
        {"customer_id": 2, "registration_date": date(2023, 3, 1), "username": "bob"},
    ]

    winners = select_winners(records, ("customer_id",), (SortKey("registration_date"),))

    assert [winner["username"] for winner in winners] == ["new", "bob"]


def test_rank_candidates_places_nulls_last_when_descending() -> None:
    """Null ranking values should lose against any value when descending."""
    candidates = [
        {"id": 1, "registration_date": None},
        {"id": 1, "registration_date": date(2020, 1, 1)},
    ]

    ranked = rank_candidates(candidates, (SortKey("registration_date"),))

    assert ranked[0]["registration_date"] == date(2020, 1, 1)


def test_rank_candidates_applies_extract_projection() -> None:
    """The longest address should win when ranking by length."""
    candidates = [{"full_address": "9 Nimman"}, {"full_address": "9 Nimman Road, Chiang Mai"}]

    ranked = rank_candidates(candidates, (SortKey("full_address", extract=len),))

    assert ranked[0]["full_address"] == "9 Nimman Road, Chiang Mai"


def test_rank_candidates_is_independent_of_input_order() -> None:
    """Exact ranking ties should resolve the same way for any input order."""
    first = {"product_id": 1, "product_name": "A", "brand": "X"}
    second = {"product_id": 1, "product_name": "A", "brand": "Y"}

    forward = rank_candidates([first, second], (SortKey("product_name", descending=False),))
    backward = rank_candidates([second, first], (SortKey("product_name", descending=False),))

    assert forward[0] == backward[0]
