"""Core constants used across Silverline modules.

This module centralizes storage names, tolerances, and domain vocabularies.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from pathlib import Path

DEFAULT_DATA_ROOT = Path(".silverline")
DEFAULT_SOURCE_URI = "datasets"
DEFAULT_MAX_WORKERS = 1
SILVER_LAYER_NAME = "silver"
DQ_LAYER_NAME = "dq"
VERSIONS_DIR_NAME = "versions"
CATALOG_FILE_NAME = "catalog.json"
MANIFEST_FILE_NAME = "manifest.json"
TABLE_FILE_SUFFIX = ".jsonl"
LANCE_DIR_SUFFIX = ".lance"
PARTIAL_DIR_SUFFIX = ".partial"
ISSUE_TABLE_NAME = "dq_issues"
REJECTION_TABLE_NAME = "rejections"
HASH_ALGORITHM = "sha256"
KEY_SEPARATOR = "|"

AMOUNT_TOLERANCE = Decimal("0.01")
MIN_BUSINESS_DATE = date(2023, 1, 1)
MAX_LOCAL_PRICE = Decimal("999999.99")
MAX_ORDER_TOTAL = Decimal("1000000")
MAX_PROFIT_MARGIN = Decimal("1000")
MAX_RATING = Decimal("5.0")

ORDER_STATUSES = ("COMPLETED", "CANCELLED", "RETURNED")
PRICE_TYPES = ("RETAIL", "WHOLESALE", "DISCOUNT", "PROMOTIONAL")
TRANSACTION_STATUSES = ("COMPLETED", "FAILED", "CANCELLED", "PENDING", "REFUNDED")
REFUND_STATUSES = ("REFUNDED", "NOTREFUNDED", "NOTAPPLICABLE", "PROCESSING", "DISPUTED")
NOT_REFUNDED_STATUSES = ("NOT APPLICABLE", "NOT_REFUNDED", "NOT REFUNDED", "NOTAPPLICABLE")
SHIPMENT_TYPES = ("EXPRESS", "STANDARD")
SHIPMENT_STATUSES = ("DELIVERED", "RETURNED", "IN TRANSIT", "LOST", "PROCESSING")
DELIVERY_STATUSES = ("SUCCESSFUL", "DELAYED", "RETURNED", "PENDING", "FAILED")
VALID_SHIPMENT_STATUS_COMBOS = frozenset(
    {
        ("DELIVERED", "SUCCESSFUL"),
        ("DELIVERED", "DELAYED"),
        ("RETURNED", "RETURNED"),
        ("LOST", "FAILED"),
        ("IN TRANSIT", "PENDING"),
        ("PROCESSING", "PENDING"),
    }
)
DELIVERY_SERVICE_TYPES = ("STANDARD", "EXPRESS", "REGISTERED", "INTERNATIONAL")
GLOBAL_COUNTRY_CODE = "GLOBAL"
