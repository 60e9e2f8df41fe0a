"""Unit tests for the data-quality scanner."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

import pytest

from core.config import SilverlineConfig
from core.errors import SilverlineQualityError, SilverlineStoreError
from ingest.pipeline import run_transform
from quality.catalog import CheckCatalog, CheckDefinition, Finding, ScanContext
from quality.scanner import DataQualityScanner, evaluate_catalog, issue_from_record, issue_to_record
from store.warehouse_sdk import SilverlineClient
from tests.fixture_paths import raw_extracts_uri

_EXPECTED_ISSUES = [
    ("crm_customer", "email", "null_check", "email is NULL or empty", None, "3"),
    ("crm_customer", "gender", "domain", "gender value is invalid", "N/A", "3"),
    (
        "crm_customer",
        "birth_date",
        "out_of_range",
        "birth_date is in the future",
        "2030-01-01",
        "3",
    ),
    ("crm_customer", "phone_number", "null_check", "phone_number is NULL or empty", None, "2"),
    ("crm_customer", "is_loyalty_member", "null_check", "is_loyalty_member is NULL", None, "3"),
    (
        "erp_product",
        "cost_price",
        "business_rule",
        "cost_price is greater than unit_price",
        "cost_price:45.00, unit_price:40.00",
        "101",
    ),
    (
        "erp_shipment_company",
        "company_name",
        "format",
        "company_name length exceeds 30 characters",
        "Global Freight Worldwide Logistics Co",
        "2",
    ),
    (
        "erp_orders",
        "total_price",
        "consistency",
        "total_price is zero for COMPLETED order",
        "0.00",
        "ORD007",
    ),
    ("erp_orders", "country_code", "null_check", "country_code is NULL or empty", None, "ORD007"),
    (
        "erp_invoice",
        "amount_check",
        "business_rule",
        "unit_price plus tax_amount does not equal final_amount",
        "unit_price:25.00, tax_amount:1.75, final_amount:27.00",
        "INV002",
    ),
    (
        "erp_payment",
        "business_rule",
        "business_rule",
        "FAILED payment with invalid refund_status",
        "PROCESSING",
        "PAY002",
    ),
    (
        "erp_payment",
        "business_rule",
        "business_rule",
        "is_fraud is 1 but transaction is COMPLETED",
        "true",
        "PAY003",
    ),
    (
        "erp_shipment",
        "status_combo",
        "consistency",
        "invalid shipment_status/delivery_status combination",
        "shipment_status:DELIVERED, delivery_status:RETURNED",
        "SHP002",
    ),
]


def _config(tmp_path) -> SilverlineConfig:
    return replace(
        SilverlineConfig.from_env(),
        data_root=tmp_path,
        source_uri=raw_extracts_uri(),
        as_of=datetime(2024, 6, 30),
        write_lance=False,
    )


def _issue_rows(client: SilverlineClient) -> list[tuple[object, ...]]:
    return [
        (
            issue.table,
            issue.column,
            issue.issue_type,
            issue.message,
            issue.value,
            issue.primary_key,
        )
        for issue in client.load_issues()
    ]


def test_scan_detects_fixture_issues_in_catalog_order(tmp_path) -> None:
    """The fixture extracts should produce the known issue set."""
    config = _config(tmp_path)
    run_transform(config)
    DataQualityScanner(config).run()

    assert _issue_rows(SilverlineClient(config)) == _EXPECTED_ISSUES


def test_scan_assigns_sequential_issue_ids(tmp_path) -> None:
    """Issue ids should run from one without gaps."""
    config = _config(tmp_path)
    run_transform(config)
    DataQualityScanner(config).run()

    issue_ids = [issue.issue_id for issue in SilverlineClient(config).load_issues()]

    assert issue_ids == list(range(1, len(_EXPECTED_ISSUES) + 1))


def test_scan_is_repeatable_for_one_snapshot(tmp_path) -> None:
    """Scanning the same snapshot twice should replace, not append, issues."""
    config = _config(tmp_path)
    run_transform(config)
    first = DataQualityScanner(config).run()
    first_rows = _issue_rows(SilverlineClient(config))
    second = DataQualityScanner(config).run()

    assert (
        _issue_rows(SilverlineClient(config)) == first_rows
        and first.silver_version == second.silver_version
        and second.issue_count == len(first_rows)
    )


def test_scan_without_validated_layer_raises_error(tmp_path) -> None:
    """Scanning before any transform should fail with a store error."""
    with pytest.raises(SilverlineStoreError):
        DataQualityScanner(_config(tmp_path)).run()


def test_scan_wraps_failing_check(tmp_path) -> None:
    """A check that raises should fail the scan with its id."""
    config = _config(tmp_path)
    run_transform(config)

    def _explode(context: ScanContext):
        raise ZeroDivisionError("boom")

    catalog = CheckCatalog(
        [CheckDefinition("erp_orders", "total_price", "business_rule", "explodes", _explode)]
    )

    with pytest.raises(SilverlineQualityError) as error_info:
        DataQualityScanner(config, catalog).run()

    assert error_info.value.code == "E_CHECK_FAILED"


def test_evaluate_catalog_with_empty_tables_finds_nothing() -> None:
    """Checks over empty tables should produce no issues."""
    catalog = CheckCatalog(
        [CheckDefinition("erp_orders", None, "consistency", "never", lambda context: ())]
    )
    context = ScanContext(tables={"erp_orders": []}, as_of=datetime(2024, 6, 30))

    assert evaluate_catalog(catalog, context, datetime(2024, 6, 30)) == []


def test_issue_record_round_trip_keeps_nulls() -> None:
    """Stored issue rows should convert back to equal issues."""
    catalog = CheckCatalog(
        [
            CheckDefinition(
                "erp_orders",
                None,
                "consistency",
                "row level",
                lambda context: [Finding(None, "O1")],
            )
        ]
    )
    issue = evaluate_catalog(
        catalog, ScanContext(tables={}, as_of=datetime(2024, 6, 30)), datetime(2024, 6, 30)
    )[0]

    assert issue_from_record(issue_to_record(issue)) == issue


def test_scan_uses_snapshot_as_of_for_date_rules(tmp_path) -> None:
    """Date rules follow the as-of of the scanned snapshot, not the scanning config."""
    config = _config(tmp_path)
    run_transform(config)
    DataQualityScanner(replace(config, as_of=datetime(2020, 1, 1))).run()

    assert _issue_rows(SilverlineClient(config)) == _EXPECTED_ISSUES
