"""Unit tests for versioned warehouse layer storage."""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal

import pytest

from core.config import SilverlineConfig
from core.errors import SilverlineStoreError
from store.table_codec import TablePayload
from store.warehouse_store import WarehouseStore

_AS_OF = datetime(2024, 6, 30)
_COLUMNS = {"order_id": "str", "total_price": "decimal", "order_date": "date", "paid": "bool"}


def _store(tmp_path) -> WarehouseStore:
    config = replace(SilverlineConfig.from_env(), data_root=tmp_path, write_lance=False)
    return WarehouseStore(config)


def _orders_table(*order_ids: str) -> TablePayload:
    return TablePayload(
        name="erp_orders",
        columns=_COLUMNS,
        records=tuple(
            {
                "order_id": order_id,
                "total_price": Decimal("65.00"),
                "order_date": date(2024, 3, 1),
                "paid": True,
            }
            for order_id in order_ids
        ),
    )


def test_publish_then_load_round_trips_typed_values(tmp_path) -> None:
    """Published tables should load back with their column types."""
    store = _store(tmp_path)
    store.publish("silver", [_orders_table("ORD001")], as_of=_AS_OF)

    _, records = store.load_table("silver", "erp_orders")

    assert records == [
        {
            "order_id": "ORD001",
            "total_price": Decimal("65.00"),
            "order_date": date(2024, 3, 1),
            "paid": True,
        }
    ]


def test_publish_replaces_latest_and_prunes_old_versions(tmp_path) -> None:
    """Only the newest version directory should remain after publish."""
    store = _store(tmp_path)
    store.publish("silver", [_orders_table("ORD001")], as_of=_AS_OF)
    second = store.publish("silver", [_orders_table("ORD001", "ORD002")], as_of=_AS_OF)

    version_dirs = [path.name for path in (tmp_path / "silver" / "versions").iterdir()]

    assert version_dirs == [second.version_id] and store.latest_manifest(
        "silver"
    ).table_counts == {"erp_orders": 2}


def test_publish_records_parent_version(tmp_path) -> None:
    """DQ versions should point at the silver version they scanned."""
    store = _store(tmp_path)
    silver = store.publish("silver", [_orders_table("ORD001")], as_of=_AS_OF)

    store.publish("dq", [_orders_table()], as_of=_AS_OF, parent_version=silver.version_id)

    assert store.latest_manifest("dq").parent_version == silver.version_id


def test_latest_manifest_without_publish_raises_error(tmp_path) -> None:
    """Reading an unpublished layer should fail with guidance."""
    with pytest.raises(SilverlineStoreError) as error_info:
        _store(tmp_path).latest_manifest("silver")

    assert error_info.value.code == "E_STORE_EMPTY"


def test_load_table_unknown_table_raises_error(tmp_path) -> None:
    """Tables outside the published version should be rejected."""
    store = _store(tmp_path)
    store.publish("silver", [_orders_table("ORD001")], as_of=_AS_OF)

    with pytest.raises(SilverlineStoreError):
        store.load_table("silver", "erp_invoice")


def test_publish_removes_staging_after_unexpected_failure(tmp_path, monkeypatch) -> None:
    """Any table write failure should surface as a store error and leave no staging dir."""

    def _failing_write(version_dir, table, write_lance) -> bool:
        raise ValueError("value does not fit column type")

    monkeypatch.setattr("store.warehouse_store.write_table", _failing_write)
    store = _store(tmp_path)

    with pytest.raises(SilverlineStoreError) as error:
        store.publish("silver", [_orders_table("ORD001")], as_of=_AS_OF)

    assert error.value.code == "E_STORE_WRITE"
    assert list((tmp_path / "silver" / "versions").iterdir()) == []
