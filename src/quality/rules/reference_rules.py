"""Health checks for product and partner reference tables."""

from __future__ import annotations

import re

from core.constants import (
    GLOBAL_COUNTRY_CODE,
    MAX_LOCAL_PRICE,
    MAX_PROFIT_MARGIN,
    MAX_RATING,
    MIN_BUSINESS_DATE,
)
from core.types import EntityRecord
from quality.catalog import CheckDefinition, ScanContext
from quality.check_builders import TableCheckBuilder, labelled_values
from transforms.derivations import has_delivery_service
from transforms.entity_catalog import PAYMENT_CHANNEL, PRODUCT, PRODUCT_PRICE, SHIPMENT_COMPANY

_COMPANY_COUNTRY_PATTERN = r"[A-Za-z]{2,5}"
_CHANNEL_COUNTRY_PATTERN = r"[A-Z]{2}"


def build_checks() -> list[CheckDefinition]:
    """Checks for product, product price, shipment company and payment channel."""
    return [
        *_product_checks(),
        *_product_price_checks(),
        *_shipment_company_checks(),
        *_payment_channel_checks(),
    ]


def _product_checks() -> list[CheckDefinition]:
    product = TableCheckBuilder(PRODUCT)
    return [
        product.not_null("product_id"),
        product.unique("product_id"),
        product.out_of_range("unit_price", "unit_price is negative", lower=0),
        product.out_of_range("cost_price", "cost_price is negative", lower=0),
        product.predicate(
            "cost_price",
            "business_rule",
            "cost_price is greater than unit_price",
            _cost_above_price,
            render=labelled_values("cost_price", "unit_price"),
        ),
        product.out_of_range(
            "profit_margin",
            "profit_margin is greater than 1000%",
            upper=MAX_PROFIT_MARGIN,
        ),
        product.out_of_range(
            "rating",
            "rating is NULL or out of range [0,5]",
            lower=0,
            upper=MAX_RATING,
            flag_null=True,
        ),
        product.out_of_range("review_count", "review_count is negative", lower=0),
    ]


def _product_price_checks() -> list[CheckDefinition]:
    product_price = TableCheckBuilder(PRODUCT_PRICE)
    return [
        product_price.not_null("product_id"),
        product_price.references("product_id", PRODUCT),
        product_price.out_of_range(
            "local_price",
            "local_price is out of allowed range",
            lower=0,
            upper=MAX_LOCAL_PRICE,
            lower_inclusive=False,
        ),
        product_price.predicate(
            "effective_date",
            "out_of_range",
            "effective_date is out of allowed range",
            _effective_date_outside_window,
        ),
    ]


def _shipment_company_checks() -> list[CheckDefinition]:
    company = TableCheckBuilder(SHIPMENT_COMPANY)
    return [
        company.not_null("shipment_company_id"),
        company.not_blank("company_name"),
        company.not_blank("country_code"),
        company.max_length("company_name", 30),
        company.pattern(
            "country_code",
            _COMPANY_COUNTRY_PATTERN,
            "country_code format is invalid",
        ),
        company.unique("shipment_company_id"),
        company.predicate(
            None,
            "business_rule",
            "no delivery type flag set (should have at least one)",
            lambda record, _: not has_delivery_service(record),
        ),
    ]


def _payment_channel_checks() -> list[CheckDefinition]:
    channel = TableCheckBuilder(PAYMENT_CHANNEL)
    return [
        channel.not_blank("payment_channel_id"),
        channel.not_blank("channel_name"),
        channel.not_blank("provider_name"),
        channel.not_blank("country_code"),
        channel.max_length("payment_channel_id", 15),
        channel.max_length("channel_name", 20),
        channel.max_length("provider_name", 20),
        channel.predicate(
            "country_code",
            "format",
            "country_code format is invalid",
            _invalid_channel_country,
        ),
        channel.unique("payment_channel_id"),
    ]


def _cost_above_price(record: EntityRecord, _: ScanContext) -> bool:
    unit_price = record["unit_price"]
    cost_price = record["cost_price"]
    return unit_price is not None and cost_price is not None and cost_price > unit_price


def _effective_date_outside_window(record: EntityRecord, context: ScanContext) -> bool:
    effective_date = record["effective_date"]
    if effective_date is None:
        return False
    return effective_date < MIN_BUSINESS_DATE or effective_date > context.today


def _invalid_channel_country(record: EntityRecord, _: ScanContext) -> bool:
    """Country must be ``GLOBAL`` or an upper-case two-letter code."""
    country_code = record["country_code"]
    if country_code is None or country_code.strip().upper() == GLOBAL_COUNTRY_CODE:
        return False
    return re.fullmatch(_CHANNEL_COUNTRY_PATTERN, country_code.strip()) is None
