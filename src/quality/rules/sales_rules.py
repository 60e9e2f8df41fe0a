"""Health checks for order, invoice, and payment tables."""

from __future__ import annotations

from decimal import Decimal

from core.constants import (
    AMOUNT_TOLERANCE,
    MAX_ORDER_TOTAL,
    MIN_BUSINESS_DATE,
    ORDER_STATUSES,
    REFUND_STATUSES,
    TRANSACTION_STATUSES,
)
from core.types import EntityRecord
from core.value_format import render_value
from quality.catalog import CheckDefinition, ScanContext
from quality.check_builders import (
    TableCheckBuilder,
    column_value,
    compact_canonical,
    labelled_values,
)
from transforms.entity_catalog import (
    ADDRESS,
    CUSTOMER,
    INVOICE,
    INVOICE_DETAIL,
    ORDER,
    ORDER_DETAIL,
    PAYMENT,
    PAYMENT_CHANNEL,
    PRODUCT,
    SHIPMENT_COMPANY,
)
from transforms.field_normalizers import round_amount

_COUNTRY_CODE_PATTERN = r"[A-Za-z]{2}"
_FAILED_PAYMENT_REFUND_STATUSES = ("NOTAPPLICABLE", "NOTREFUNDED")


def build_checks() -> list[CheckDefinition]:
    """Checks for orders, order details, invoices, invoice details and payments."""
    return [
        *_order_checks(),
        *_order_detail_checks(),
        *_invoice_checks(),
        *_invoice_detail_checks(),
        *_payment_checks(),
    ]


def _order_checks() -> list[CheckDefinition]:
    order = TableCheckBuilder(ORDER)
    return [
        order.not_blank("order_id"),
        order.unique("order_id"),
        order.out_of_range(
            "total_price", "total_price is NULL or negative", lower=0, flag_null=True
        ),
        order.out_of_range("total_price", "total_price exceeds upper limit", upper=MAX_ORDER_TOTAL),
        order.predicate(
            "total_price",
            "consistency",
            "total_price is zero for COMPLETED order",
            lambda record, _: record["total_price"] == 0
            and _upper(record["order_status"]) == "COMPLETED",
        ),
        order.not_blank("order_status"),
        order.max_length("order_status", 15),
        order.domain("order_status", ORDER_STATUSES),
        order.not_blank("country_code"),
        order.pattern("country_code", _COUNTRY_CODE_PATTERN, "country_code is not ISO 2-letter"),
        order.not_null("shipping_address_id"),
        order.not_null("shipment_company_id"),
        order.not_in_future("order_datetime"),
        order.not_before("order_datetime", MIN_BUSINESS_DATE),
        order.references("customer_id", CUSTOMER),
        order.references("shipping_address_id", ADDRESS, "address_id"),
        order.references("shipment_company_id", SHIPMENT_COMPANY),
        order.predicate(
            "status_flags",
            "consistency",
            "order_status is CANCELLED but is_cancelled is not 1",
            lambda record, _: _upper(record["order_status"]) == "CANCELLED"
            and record["is_cancelled"] is not True,
            render=labelled_values("order_status", "is_cancelled"),
        ),
        order.predicate(
            "status_flags",
            "consistency",
            "order_status is COMPLETED but is_cancelled or is_returned is 1",
            lambda record, _: _upper(record["order_status"]) == "COMPLETED"
            and (record["is_cancelled"] is True or record["is_returned"] is True),
            render=labelled_values("is_cancelled", "is_returned"),
        ),
    ]


def _order_detail_checks() -> list[CheckDefinition]:
    detail = TableCheckBuilder(ORDER_DETAIL)
    return [
        detail.unique("order_detail_id"),
        detail.not_blank("order_id"),
        detail.out_of_range(
            "quantity", "quantity is NULL or <= 0", lower=0, lower_inclusive=False, flag_null=True
        ),
        detail.out_of_range(
            "unit_price", "unit_price is NULL or negative", lower=0, flag_null=True
        ),
        detail.out_of_range("discount_amount", "discount_amount is negative", lower=0),
        detail.out_of_range(
            "sales_amount", "sales_amount is NULL or negative", lower=0, flag_null=True
        ),
        detail.out_of_range(
            "recalc_sales_amount",
            "recalc_sales_amount is NULL or negative",
            lower=0,
            flag_null=True,
        ),
        detail.not_in_future("order_datetime"),
        detail.references("order_id", ORDER),
        detail.references("product_id", PRODUCT),
    ]


def _invoice_checks() -> list[CheckDefinition]:
    invoice = TableCheckBuilder(INVOICE)
    amount_checks = [
        invoice.out_of_range(column, f"{column} is NULL or negative", lower=0, flag_null=True)
        for column in ("unit_price", "tax_amount", "final_amount")
    ]
    return [
        invoice.not_blank("invoice_id"),
        *amount_checks,
        invoice.not_in_future("invoice_datetime"),
        invoice.predicate(
            "amount_check",
            "business_rule",
            "unit_price plus tax_amount does not equal final_amount",
            _invoice_amount_mismatch,
            render=labelled_values("unit_price", "tax_amount", "final_amount"),
        ),
        invoice.references("order_id", ORDER),
    ]


def _invoice_detail_checks() -> list[CheckDefinition]:
    detail = TableCheckBuilder(INVOICE_DETAIL)
    return [
        detail.not_blank("invoice_detail_id"),
        detail.not_blank("invoice_id"),
        detail.not_null("product_id"),
        detail.out_of_range(
            "quantity", "quantity is NULL or <= 0", lower=0, lower_inclusive=False, flag_null=True
        ),
        detail.out_of_range(
            "sales_amount", "sales_amount is NULL or negative", lower=0, flag_null=True
        ),
        detail.out_of_range(
            "tax_amount", "tax_amount is NULL or negative", lower=0, flag_null=True
        ),
        detail.not_null("invoice_datetime"),
        detail.max_length("invoice_detail_id", 20),
        detail.max_length("invoice_id", 15),
        detail.not_in_future("invoice_datetime"),
        detail.references("invoice_id", INVOICE),
        detail.references("product_id", PRODUCT),
        detail.predicate(
            "line_total",
            "business_rule",
            "line_total does not match sales_amount plus tax_amount",
            _line_total_mismatch,
            render=_render_line_total,
        ),
        detail.out_of_range("tax_rate", "tax_rate is out of range", lower=0, upper=1),
        detail.unique("invoice_detail_id"),
    ]


def _payment_checks() -> list[CheckDefinition]:
    payment = TableCheckBuilder(PAYMENT)
    return [
        payment.not_blank("payment_id"),
        payment.not_blank("order_id"),
        payment.not_blank("payment_channel_id"),
        payment.not_null("payment_datetime"),
        payment.out_of_range(
            "final_amount", "final_amount is NULL or negative", lower=0, flag_null=True
        ),
        payment.not_blank("transaction_status"),
        payment.not_null("is_fraud"),
        payment.not_blank("refund_status"),
        payment.max_length("payment_id", 15),
        payment.domain("transaction_status", TRANSACTION_STATUSES),
        payment.domain("refund_status", REFUND_STATUSES, canonical=compact_canonical),
        payment.not_in_future("payment_datetime"),
        payment.references("order_id", ORDER),
        payment.references("payment_channel_id", PAYMENT_CHANNEL),
        payment.unique("payment_id"),
        *_payment_business_rules(payment),
    ]


def _payment_business_rules(payment: TableCheckBuilder) -> list[CheckDefinition]:
    return [
        payment.predicate(
            "business_rule",
            "business_rule",
            "payment is refunded but not COMPLETED",
            lambda record, _: _upper(record["refund_status"]) == "REFUNDED"
            and _upper(record["transaction_status"]) not in (None, "COMPLETED"),
            render=column_value("refund_status"),
        ),
        payment.predicate(
            "business_rule",
            "business_rule",
            "FAILED payment with invalid refund_status",
            _failed_with_invalid_refund,
            render=column_value("refund_status"),
        ),
        payment.predicate(
            "business_rule",
            "business_rule",
            "is_refunded = 1 but refund_status is not REFUNDED",
            lambda record, _: record["is_refunded"] is True
            and _upper(record["refund_status"]) not in (None, "REFUNDED"),
            render=column_value("refund_status"),
        ),
        payment.predicate(
            "business_rule",
            "business_rule",
            "is_fraud is 1 but transaction is COMPLETED",
            lambda record, _: record["is_fraud"] is True
            and _upper(record["transaction_status"]) == "COMPLETED",
            render=column_value("is_fraud"),
        ),
        payment.predicate(
            "business_rule",
            "business_rule",
            "Processing/disputed refund_status for completed payment",
            lambda record, _: _upper(record["transaction_status"]) == "COMPLETED"
            and _upper(record["refund_status"]) in ("PROCESSING", "DISPUTED"),
            render=column_value("refund_status"),
        ),
    ]


def _upper(value: str | None) -> str | None:
    return None if value is None else value.upper()


def _amounts_disagree(expected: Decimal, actual: Decimal) -> bool:
    return abs(round_amount(expected) - round_amount(actual)) > AMOUNT_TOLERANCE


def _invoice_amount_mismatch(record: EntityRecord, _: ScanContext) -> bool:
    unit_price = record["unit_price"]
    tax_amount = record["tax_amount"]
    final_amount = record["final_amount"]
    if unit_price is None or tax_amount is None or final_amount is None:
        return False
    return _amounts_disagree(unit_price + tax_amount, final_amount)


def _line_total_mismatch(record: EntityRecord, _: ScanContext) -> bool:
    sales_amount = record["sales_amount"]
    tax_amount = record["tax_amount"]
    line_total = record["line_total"]
    if sales_amount is None or tax_amount is None or line_total is None:
        return False
    return _amounts_disagree(sales_amount + tax_amount, line_total)


def _render_line_total(record: EntityRecord) -> str:
    expected = round_amount(record["sales_amount"] + record["tax_amount"])
    actual = round_amount(record["line_total"])
    return f"Expected:{render_value(expected)}, Actual:{render_value(actual)}"


def _failed_with_invalid_refund(record: EntityRecord, _: ScanContext) -> bool:
    refund_status = record["refund_status"]
    if _upper(record["transaction_status"]) != "FAILED" or refund_status is None:
        return False
    return compact_canonical(refund_status) not in _FAILED_PAYMENT_REFUND_STATUSES
