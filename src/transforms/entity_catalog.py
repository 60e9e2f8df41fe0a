"""Registry of entity transform specifications.

This module declares the twelve warehouse entities as data. Adding an
entity means adding one ``EntitySpec`` here; the executor and dependency
graph pick it up without code changes.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from core.constants import (
    DELIVERY_STATUSES,
    MIN_BUSINESS_DATE,
    PRICE_TYPES,
    SHIPMENT_STATUSES,
    SHIPMENT_TYPES,
)
from core.types import EntityRecord
from transforms import derivations
from transforms.deduplication import SortKey
from transforms.entity_spec import DerivationContext, EntitySpec, ForeignKey, RowRule
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
    parse_decimal,
    parse_email,
    parse_gender,
    parse_int,
    parse_local_price,
    parse_postal_code,
    parse_price,
    parse_rating,
    parse_time,
    upper_text,
    upper_text_or,
)


def present(column: str) -> RowRule:
    """Rule requiring a non-null value."""
    return RowRule(f"missing:{column}", lambda record, _: record[column] is not None)


def non_negative(column: str) -> RowRule:
    """Rule requiring a non-null value of at least zero."""
    return RowRule(
        f"negative:{column}",
        lambda record, _: record[column] is not None and record[column] >= 0,
    )


def positive(column: str) -> RowRule:
    """Rule requiring a non-null value above zero."""
    return RowRule(
        f"not_positive:{column}",
        lambda record, _: record[column] is not None and record[column] > 0,
    )


def not_in_future(column: str) -> RowRule:
    """Rule requiring a date or datetime no later than the run as-of time."""

    def _check(record: EntityRecord, context: DerivationContext) -> bool:
        value: Any = record[column]
        if value is None:
            return False
        if isinstance(value, datetime):
            return value <= context.as_of
        return value <= context.today

    return RowRule(f"future:{column}", _check)


def _effective_date_in_window(record: EntityRecord, context: DerivationContext) -> bool:
    effective_date: date | None = record["effective_date"]
    return effective_date is not None and MIN_BUSINESS_DATE <= effective_date <= context.today


def _shipment_dates_ordered(record: EntityRecord, context: DerivationContext) -> bool:
    return record["shipment_date"] <= record["delivery_date"]


CUSTOMER = EntitySpec(
    name="customer",
    table="crm_customer",
    source_file="source_crm/customers.csv",
    natural_key=("customer_id",),
    normalizers={
        "customer_id": parse_int,
        "username": clean_text,
        "email": parse_email,
        "first_name": clean_text,
        "last_name": clean_text,
        "gender": parse_gender,
        "birth_date": parse_date,
        "phone_number": clean_text,
        "registration_date": parse_date,
        "registration_datetime": parse_datetime,
        "is_loyalty_member": parse_bool_text,
        "is_fraud_suspected": parse_bool_text,
        "customer_segment": upper_text,
    },
    ranking=(SortKey("registration_date"),),
    columns={
        "customer_id": "int",
        "username": "str",
        "email": "str",
        "first_name": "str",
        "last_name": "str",
        "gender": "str",
        "age": "int",
        "age_group": "str",
        "birth_date": "date",
        "phone_number": "str",
        "registration_datetime": "datetime",
        "is_loyalty_member": "bool",
        "is_fraud_suspected": "bool",
        "customer_segment": "str",
    },
    derive=derivations.derive_customer,
)

ADDRESS = EntitySpec(
    name="address",
    table="crm_customer_addresses",
    source_file="source_crm/customer_addresses.csv",
    natural_key=("address_id",),
    normalizers={
        "address_id": parse_int,
        "customer_id": parse_int,
        "country": clean_text,
        "country_code": upper_text,
        "province": clean_text,
        "province_code": upper_text,
        "city": clean_text,
        "district": clean_text,
        "postal_code": parse_postal_code,
        "full_address": clean_text,
    },
    ranking=(SortKey("full_address", extract=len),),
    columns={
        "address_id": "int",
        "customer_id": "int",
        "country": "str",
        "country_code": "str",
        "province": "str",
        "province_code": "str",
        "city": "str",
        "district": "str",
        "postal_code": "str",
        "full_address": "str",
    },
    derive=derivations.derive_address,
    candidate_rules=(present("customer_id"), present("full_address")),
    foreign_keys=(ForeignKey("customer_id", "customer", "customer_id"),),
)

PAYMENT_CHANNEL = EntitySpec(
    name="payment_channel",
    table="erp_payment_channel",
    source_file="source_erp/payment_channel.csv",
    natural_key=("payment_channel_id",),
    normalizers={
        "payment_channel_id": clean_text,
        "channel_name": upper_text,
        "provider_name": upper_text,
        "country_code": parse_country_code_or_global,
        "payment_type": upper_text,
    },
    ranking=(),
    columns={
        "payment_channel_id": "str",
        "channel_name": "str",
        "provider_name": "str",
        "country_code": "str",
        "is_banktransfer": "bool",
        "is_card": "bool",
        "is_wallet": "bool",
    },
    derive=derivations.derive_payment_channel,
    required=("channel_name", "provider_name", "country_code"),
    gate_rules=(
        RowRule(
            "no_payment_category",
            lambda record, _: derivations.has_payment_category(record),
        ),
    ),
)

SHIPMENT_COMPANY = EntitySpec(
    name="shipment_company",
    table="erp_shipment_company",
    source_file="source_erp/shipment_company.csv",
    natural_key=("shipment_company_id",),
    normalizers={
        "shipment_company_id": parse_int,
        "company_name": clean_text,
        "country_code": parse_country_code,
        "operating_countries": parse_code_list,
        "delivery_types": parse_code_list,
    },
    ranking=(),
    columns={
        "shipment_company_id": "int",
        "company_name": "str",
        "company_type": "str",
        "country_code": "str",
        "is_standard": "bool",
        "is_express": "bool",
        "is_registered": "bool",
        "is_international": "bool",
    },
    derive=derivations.derive_shipment_company,
    required=("country_code",),
    gate_rules=(
        RowRule(
            "no_delivery_service",
            lambda record, _: derivations.has_delivery_service(record),
        ),
    ),
)

PRODUCT = EntitySpec(
    name="product",
    table="erp_product",
    source_file="source_erp/product.csv",
    natural_key=("product_id",),
    normalizers={
        "product_id": parse_int,
        "product_name": upper_text_or("UNKNOWN_PRODUCT"),
        "category": upper_text_or("UNCATEGORIZED"),
        "sub_category": upper_text_or("UNCATEGORIZED"),
        "brand": upper_text_or("NO_BRAND"),
        "unit_price": parse_price,
        "cost_price": parse_price,
        "rating": parse_rating,
        "review_count": parse_count,
    },
    ranking=(
        SortKey("product_name", descending=False),
        SortKey("category", descending=False),
        SortKey("sub_category", descending=False),
        SortKey("brand", descending=False),
    ),
    columns={
        "product_id": "int",
        "product_name": "str",
        "category": "str",
        "sub_category": "str",
        "brand": "str",
        "unit_price": "decimal",
        "cost_price": "decimal",
        "profit_margin": "decimal",
        "profit_amount": "decimal",
        "rating": "decimal",
        "review_count": "int",
        "price_tier": "str",
        "rating_category": "str",
        "popularity_score": "int",
        "competitive_advantage": "str",
    },
    derive=derivations.derive_product,
    population_derive=derivations.derive_product_tiers,
)

PRODUCT_PRICE = EntitySpec(
    name="product_price",
    table="erp_product_prices",
    source_file="source_erp/product_prices.csv",
    natural_key=("product_id", "country_code", "effective_date", "price_type"),
    normalizers={
        "product_id": parse_int,
        "country_code": parse_country_code,
        "local_price": parse_local_price,
        "price_type": domain_text(PRICE_TYPES),
        "effective_date": parse_date,
    },
    ranking=(SortKey("effective_date"),),
    columns={
        "product_id": "int",
        "country_code": "str",
        "local_price": "decimal",
        "price_type": "str",
        "effective_date": "date",
    },
    derive=derivations.derive_product_price,
    candidate_rules=(
        RowRule("out_of_range:effective_date", _effective_date_in_window),
    ),
    required=("local_price",),
)

ORDER = EntitySpec(
    name="order",
    table="erp_orders",
    source_file="source_erp/orders.csv",
    natural_key=("order_id",),
    normalizers={
        "order_id": clean_text,
        "customer_id": parse_int,
        "order_date": parse_date,
        "order_time": parse_time,
        "shipping_address_id": parse_int,
        "shipment_company_id": parse_int,
        "total_price": parse_amount,
        "order_status": upper_text,
        "is_cancelled": parse_bool_text,
        "is_returned": parse_bool_text,
        "return_reason": upper_text,
        "country_code": upper_text,
    },
    ranking=(SortKey("order_date"), SortKey("order_time")),
    columns={
        "order_id": "str",
        "customer_id": "int",
        "shipping_address_id": "int",
        "shipment_company_id": "int",
        "order_datetime": "datetime",
        "total_price": "decimal",
        "order_status": "str",
        "is_cancelled": "bool",
        "is_returned": "bool",
        "return_reason": "str",
        "cancellation_reason": "str",
        "country_code": "str",
    },
    derive=derivations.derive_order,
    candidate_rules=(
        present("customer_id"),
        present("order_date"),
        present("order_time"),
        non_negative("total_price"),
        not_in_future("order_date"),
        present("order_status"),
        present("country_code"),
    ),
    required=("order_status",),
    foreign_keys=(
        ForeignKey("customer_id", "customer", "customer_id"),
        ForeignKey("shipping_address_id", "address", "address_id"),
        ForeignKey("shipment_company_id", "shipment_company", "shipment_company_id"),
    ),
)

ORDER_DETAIL = EntitySpec(
    name="order_detail",
    table="erp_order_detail",
    source_file="source_erp/order_detail.csv",
    natural_key=("order_detail_id", "order_id"),
    normalizers={
        "order_detail_id": clean_text,
        "order_id": clean_text,
        "product_id": parse_int,
        "quantity": parse_int,
        "unit_price": parse_decimal,
        "discount_amount": parse_decimal,
        "sales_amount": parse_decimal,
        "order_datetime": parse_datetime,
    },
    ranking=(SortKey("order_datetime"), SortKey("product_id")),
    columns={
        "order_detail_id": "str",
        "order_id": "str",
        "product_id": "int",
        "quantity": "int",
        "unit_price": "decimal",
        "discount_amount": "decimal",
        "sales_amount": "decimal",
        "recalc_sales_amount": "decimal",
        "sales_match_flag": "bool",
        "order_datetime": "datetime",
    },
    derive=derivations.derive_order_detail,
    candidate_rules=(
        present("product_id"),
        positive("quantity"),
        non_negative("unit_price"),
        non_negative("discount_amount"),
        non_negative("sales_amount"),
        not_in_future("order_datetime"),
    ),
    foreign_keys=(
        ForeignKey("order_id", "order", "order_id"),
        ForeignKey("product_id", "product", "product_id"),
    ),
)

INVOICE = EntitySpec(
    name="invoice",
    table="erp_invoice",
    source_file="source_erp/invoice.csv",
    natural_key=("invoice_id",),
    normalizers={
        "invoice_id": clean_text,
        "order_id": clean_text,
        "unit_price": parse_decimal,
        "tax_amount": parse_decimal,
        "final_amount": parse_decimal,
        "invoice_status": upper_text,
        "invoice_datetime": parse_datetime,
    },
    ranking=(SortKey("invoice_datetime"), SortKey("order_id")),
    columns={
        "invoice_id": "str",
        "order_id": "str",
        "unit_price": "decimal",
        "tax_amount": "decimal",
        "final_amount": "decimal",
        "invoice_status": "str",
        "invoice_datetime": "datetime",
        "is_amount_correct": "bool",
    },
    derive=derivations.derive_invoice,
    candidate_rules=(
        present("order_id"),
        non_negative("unit_price"),
        non_negative("tax_amount"),
        non_negative("final_amount"),
        not_in_future("invoice_datetime"),
    ),
    foreign_keys=(ForeignKey("order_id", "order", "order_id"),),
)

INVOICE_DETAIL = EntitySpec(
    name="invoice_detail",
    table="erp_invoice_detail",
    source_file="source_erp/invoice_detail.csv",
    natural_key=("invoice_detail_id", "invoice_id", "product_id"),
    normalizers={
        "invoice_detail_id": clean_text,
        "invoice_id": clean_text,
        "product_id": parse_int,
        "quantity": parse_int,
        "sales_amount": parse_decimal,
        "tax_amount": parse_decimal,
        "invoice_datetime": parse_datetime,
    },
    ranking=(SortKey("invoice_datetime"), SortKey("product_id")),
    columns={
        "invoice_detail_id": "str",
        "invoice_id": "str",
        "product_id": "int",
        "quantity": "int",
        "sales_amount": "decimal",
        "tax_amount": "decimal",
        "line_total": "decimal",
        "tax_rate": "decimal",
        "invoice_datetime": "datetime",
    },
    derive=derivations.derive_invoice_detail,
    candidate_rules=(
        positive("quantity"),
        non_negative("sales_amount"),
        non_negative("tax_amount"),
        not_in_future("invoice_datetime"),
    ),
    foreign_keys=(
        ForeignKey("invoice_id", "invoice", "invoice_id"),
        ForeignKey("product_id", "product", "product_id"),
    ),
)

PAYMENT = EntitySpec(
    name="payment",
    table="erp_payment",
    source_file="source_erp/payment.csv",
    natural_key=("payment_id",),
    normalizers={
        "payment_id": clean_text,
        "order_id": clean_text,
        "payment_channel_id": clean_text,
        "payment_datetime": parse_datetime,
        "final_amount": parse_decimal,
        "transaction_status": upper_text,
        "is_fraud": upper_text,
        "refund_status": upper_text,
    },
    ranking=(SortKey("payment_datetime"), SortKey("order_id")),
    columns={
        "payment_id": "str",
        "order_id": "str",
        "payment_channel_id": "str",
        "payment_datetime": "datetime",
        "final_amount": "decimal",
        "transaction_status": "str",
        "is_fraud": "bool",
        "refund_status": "str",
        "is_refunded": "bool",
        "rule_violation": "str",
    },
    derive=derivations.derive_payment,
    candidate_rules=(
        present("order_id"),
        present("payment_channel_id"),
        not_in_future("payment_datetime"),
        non_negative("final_amount"),
        present("transaction_status"),
        present("is_fraud"),
        present("refund_status"),
    ),
    foreign_keys=(
        ForeignKey("order_id", "order", "order_id"),
        ForeignKey("payment_channel_id", "payment_channel", "payment_channel_id"),
    ),
)

SHIPMENT = EntitySpec(
    name="shipment",
    table="erp_shipment",
    source_file="source_erp/shipment.csv",
    natural_key=("shipment_id",),
    normalizers={
        "shipment_id": clean_text,
        "order_id": clean_text,
        "shipment_company_id": parse_int,
        "shipping_address_id": parse_int,
        "shipment_date": parse_date,
        "delivery_date": parse_date,
        "shipment_type": domain_text(SHIPMENT_TYPES),
        "shipment_status": domain_text(SHIPMENT_STATUSES),
        "delivery_status": domain_text(DELIVERY_STATUSES),
    },
    ranking=(SortKey("shipment_date"),),
    columns={
        "shipment_id": "str",
        "order_id": "str",
        "shipment_company_id": "int",
        "shipping_address_id": "int",
        "shipment_date": "date",
        "delivery_date": "date",
        "shipment_type": "str",
        "shipment_status": "str",
        "delivery_status": "str",
        "transit_days": "int",
        "is_delayed": "bool",
        "is_failed": "bool",
        "is_returned_delivery": "bool",
        "is_lost": "bool",
        "is_valid_status_combo": "bool",
    },
    derive=derivations.derive_shipment,
    candidate_rules=(
        present("order_id"),
        present("shipment_company_id"),
        present("shipping_address_id"),
        present("shipment_date"),
        present("delivery_date"),
        RowRule("shipment_after_delivery", _shipment_dates_ordered),
        present("shipment_type"),
        present("shipment_status"),
        present("delivery_status"),
    ),
    foreign_keys=(
        ForeignKey("order_id", "order", "order_id"),
        ForeignKey("shipment_company_id", "shipment_company", "shipment_company_id"),
    ),
)

ENTITY_SPECS: tuple[EntitySpec, ...] = (
    CUSTOMER,
    ADDRESS,
    PAYMENT_CHANNEL,
    SHIPMENT_COMPANY,
    PRODUCT,
    PRODUCT_PRICE,
    ORDER,
    ORDER_DETAIL,
    INVOICE,
    INVOICE_DETAIL,
    PAYMENT,
    SHIPMENT,
)


def entity_spec_by_name(name: str) -> EntitySpec:
    """Look up a registered entity by name or table name.

    Raises:
        KeyError: If no entity matches.
    """
    for spec in ENTITY_SPECS:
        if name in (spec.name, spec.table):
            return spec
    raise KeyError(name)
