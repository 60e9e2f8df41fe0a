"""Health checks for the shipment table."""

from __future__ import annotations

from core.constants import DELIVERY_STATUSES, SHIPMENT_STATUSES, SHIPMENT_TYPES
from core.types import EntityRecord
from quality.catalog import CheckDefinition, ScanContext
from quality.check_builders import TableCheckBuilder, labelled_values
from transforms.derivations import is_valid_status_combo
from transforms.entity_catalog import ORDER, SHIPMENT, SHIPMENT_COMPANY


def build_checks() -> list[CheckDefinition]:
    """Checks for ``erp_shipment``."""
    shipment = TableCheckBuilder(SHIPMENT)
    return [
        shipment.not_blank("shipment_id"),
        shipment.not_blank("order_id"),
        shipment.not_null("shipment_company_id"),
        shipment.not_null("shipping_address_id"),
        shipment.not_null("shipment_date"),
        shipment.not_null("delivery_date"),
        shipment.not_blank("shipment_type"),
        shipment.not_blank("shipment_status"),
        shipment.not_blank("delivery_status"),
        shipment.max_length("shipment_id", 15),
        shipment.domain("shipment_type", SHIPMENT_TYPES),
        shipment.domain("shipment_status", SHIPMENT_STATUSES),
        shipment.domain("delivery_status", DELIVERY_STATUSES),
        shipment.predicate(
            "date_logic",
            "consistency",
            "shipment_date is after delivery_date",
            _shipped_after_delivery,
            render=labelled_values("shipment_date", "delivery_date"),
        ),
        shipment.references("order_id", ORDER),
        shipment.references("shipment_company_id", SHIPMENT_COMPANY),
        shipment.predicate(
            "status_combo",
            "consistency",
            "invalid shipment_status/delivery_status combination",
            _invalid_status_combo,
            render=labelled_values("shipment_status", "delivery_status"),
        ),
        shipment.unique("shipment_id"),
    ]


def _shipped_after_delivery(record: EntityRecord, _: ScanContext) -> bool:
    shipment_date = record["shipment_date"]
    delivery_date = record["delivery_date"]
    if shipment_date is None or delivery_date is None:
        return False
    return shipment_date > delivery_date


def _invalid_status_combo(record: EntityRecord, _: ScanContext) -> bool:
    shipment_status = record["shipment_status"]
    delivery_status = record["delivery_status"]
    if shipment_status is None or delivery_status is None:
        return False
    return not is_valid_status_combo(shipment_status.upper(), delivery_status.upper())
