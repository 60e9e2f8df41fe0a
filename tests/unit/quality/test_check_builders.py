"""Unit tests for table check builders."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from quality.catalog import CheckDefinition, Finding, ScanContext
from quality.check_builders import TableCheckBuilder, compact_canonical, labelled_values
from transforms.entity_catalog import ADDRESS, CUSTOMER, ORDER, PAYMENT, PRODUCT

_AS_OF = datetime(2024, 6, 30, 12, 0, 0)


def _findings(check: CheckDefinition, **tables: list[dict[str, object]]) -> list[Finding]:
    return list(check.evaluate(ScanContext(tables=tables, as_of=_AS_OF)))


def test_not_blank_flags_null_and_whitespace() -> None:
    """Null and whitespace-only values should both be flagged."""
    check = TableCheckBuilder(CUSTOMER).not_blank("email")
    rows = [
        {"customer_id": 1, "email": None},
        {"customer_id": 2, "email": "  "},
        {"customer_id": 3, "email": "c@example.com"},
    ]

    assert _findings(check, crm_customer=rows) == [Finding(None, "1"), Finding("  ", "2")]


def test_unique_reports_each_duplicated_value_once() -> None:
    """One finding per duplicated value keyed by that value."""
    check = TableCheckBuilder(PAYMENT).unique("payment_id")
    rows = [{"payment_id": "P2"}, {"payment_id": "P1"}, {"payment_id": "P2"}, {"payment_id": "P2"}]

    assert _findings(check, erp_payment=rows) == [Finding("P2", "P2")]


def test_domain_uses_canonical_form() -> None:
    """Values are compared after canonicalization."""
    check = TableCheckBuilder(PAYMENT).domain(
        "refund_status", ("NOTAPPLICABLE",), canonical=compact_canonical
    )
    rows = [
        {"payment_id": "P1", "refund_status": "not applicable"},
        {"payment_id": "P2", "refund_status": "LATER"},
    ]

    assert _findings(check, erp_payment=rows) == [Finding("LATER", "P2")]


def test_out_of_range_respects_bounds_and_null_flag() -> None:
    """Exclusive lower bounds and null flags should both apply."""
    check = TableCheckBuilder(PRODUCT).out_of_range(
        "rating",
        "rating is bad",
        lower=0,
        upper=Decimal("5.0"),
        lower_inclusive=False,
        flag_null=True,
    )
    rows = [
        {"product_id": 1, "rating": Decimal("0")},
        {"product_id": 2, "rating": None},
        {"product_id": 3, "rating": Decimal("4.5")},
        {"product_id": 4, "rating": Decimal("5.1")},
    ]

    assert [finding.primary_key for finding in _findings(check, erp_product=rows)] == [
        "1",
        "2",
        "4",
    ]


def test_not_in_future_compares_dates_and_datetimes() -> None:
    """Dates compare with the as-of date and datetimes with the as-of time."""
    check = TableCheckBuilder(CUSTOMER).not_in_future("registration_datetime")
    rows = [
        {"customer_id": 1, "registration_datetime": datetime(2024, 6, 30, 13, 0)},
        {"customer_id": 2, "registration_datetime": date(2024, 6, 30)},
        {"customer_id": 3, "registration_datetime": date(2024, 7, 1)},
    ]

    assert [finding.primary_key for finding in _findings(check, crm_customer=rows)] == ["1", "3"]


def test_not_before_message_names_floor() -> None:
    """The floor date should appear in the issue message."""
    check = TableCheckBuilder(ORDER).not_before("order_datetime", date(2023, 1, 1))
    rows = [{"order_id": "O1", "order_datetime": datetime(2022, 12, 31, 23, 59)}]

    assert (check.message, _findings(check, erp_orders=rows)) == (
        "order_datetime is before 2023-01-01",
        [Finding("2022-12-31 23:59:00", "O1")],
    )


def test_references_flags_missing_parent_keys() -> None:
    """Child values without a parent key should be reported."""
    check = TableCheckBuilder(ADDRESS).references("customer_id", CUSTOMER)
    addresses = [{"address_id": 10, "customer_id": 1}, {"address_id": 12, "customer_id": 99}]
    customers = [{"customer_id": 1}]

    findings = _findings(check, crm_customer_addresses=addresses, crm_customer=customers)

    assert (check.message, findings) == (
        "customer_id does not exist in crm_customer",
        [Finding("99", "12")],
    )


def test_predicate_renders_labelled_values() -> None:
    """Row-level predicates can render several columns as the value."""
    check = TableCheckBuilder(ORDER).predicate(
        "status_flags",
        "consistency",
        "flags disagree",
        lambda record, _: record["is_cancelled"] is not True,
        render=labelled_values("order_status", "is_cancelled"),
    )
    rows = [{"order_id": "O1", "order_status": "CANCELLED", "is_cancelled": False}]

    assert _findings(check, erp_orders=rows) == [
        Finding("order_status:CANCELLED, is_cancelled:false", "O1")
    ]
