"""Business-rule derivations for validated entities.

Each ``derive_*`` function is pure: it reads one normalized record plus the
run context and returns the record's output fields. Derived flags never
filter records; exclusion is the gate's job.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from statistics import mean

from core.constants import (
    AMOUNT_TOLERANCE,
    DELIVERY_SERVICE_TYPES,
    NOT_REFUNDED_STATUSES,
    VALID_SHIPMENT_STATUS_COMBOS,
)
from core.types import EntityRecord
from transforms.entity_spec import DerivationContext
from transforms.field_normalizers import (
    parse_country_code,
    parse_flag_text,
    round_amount,
    split_code_list,
)

WALLET_CHANNEL_NAMES = frozenset(
    {
        "APPLE PAY", "GOOGLE PAY", "SAMSUNG PAY", "ANDROID PAY", "VIVA WALLET",
        "MOBILEPAY", "PAYCONIQ", "MB WAY", "PAYLIB", "POSTEPAY", "PAYSERA",
        "VIPPS", "SWISH", "TWINT", "ALIPAY", "WECHAT PAY", "PAYM", "ZELLE",
        "PREPAID CARD", "DIGITAL WALLET", "E-WALLET",
    }
)
WALLET_PROVIDER_NAMES = frozenset(
    {
        "PAYPAL", "VIVA WALLET", "MOBILEPAY", "PAYCONIQ", "PAYLIB", "PAYSERA",
        "VIPPS", "SWISH", "TWINT", "ALIPAY", "WECHAT", "APPLE", "GOOGLE",
        "POSTE ITALIANE", "REVOLUT", "MONZO", "N26",
    }
)
CARD_CHANNEL_NAMES = frozenset(
    {
        "CREDIT CARD", "DEBIT CARD", "CARTE BANCAIRE", "CREDIT", "DEBIT",
        "CARD PAYMENT", "CARD", "VISA", "MASTERCARD", "MAESTRO",
        "AMERICAN EXPRESS", "AMEX", "DINERS", "DISCOVER", "JCB", "DANKORT",
        "BANCOMAT", "GIROCARD", "CARTASI",
    }
)
CARD_PROVIDER_NAMES = frozenset(
    {
        "VISA", "MASTERCARD", "MAESTRO", "AMERICAN EXPRESS", "AMEX", "DINERS",
        "DISCOVER", "JCB", "UNIONPAY", "JCC", "BANKART", "NEXI", "WORLDPAY",
        "ADYEN", "STRIPE", "SQUARE", "PAYMENTWALL",
    }
)
BANK_TRANSFER_CHANNEL_NAMES = frozenset(
    {
        "BANK TRANSFER", "WIRE TRANSFER", "ONLINE BANKING", "BANK LINK",
        "INSTANT TRANSFER", "FASTER PAYMENTS", "REAL TIME PAYMENTS",
        "SEPA DIRECT DEBIT", "SEPA CREDIT TRANSFER", "BANCONTACT", "IDEAL",
        "SOFORT", "GIROPAY", "EPS", "MYBANK", "TRUSTLY", "PAYDIREKT",
        "PRZELEWY24", "DOTPAY", "BLIK", "PAYBYBANK", "MULTIBANCO", "BIZUM",
        "PIX", "INTERAC", "BACS", "ACH", "DIRECT DEBIT", "STANDING ORDER",
        "BANK PAYMENT", "INTERNET BANKING", "MOBILE BANKING", "TELEPHONE BANKING",
    }
)
BANK_TRANSFER_PROVIDER_NAMES = frozenset(
    {
        "SEPA", "GIROPAY", "BIZUM", "KLARNA", "TRUSTLY", "MULTIBANCO",
        "PAYDIREKT", "PRZELEWY24", "DOTPAY", "BLIK", "SWIFT", "LOCAL BANKS",
        "SWEDBANK", "SEB PANK", "SEB BANKA", "OSUUSPANKKI",
        "SLOVENSKA SPORITELNA", "ERSTE BANK", "RAIFFEISEN", "SANTANDER", "BBVA",
        "BNP PARIBAS", "SOFORT", "PAYBYBANK", "ECOSPEND", "BANKED",
    }
)

_AGE_GROUPS = (
    (18, "Under 18"),
    (25, "18-24"),
    (35, "25-34"),
    (45, "35-44"),
    (55, "45-54"),
    (65, "55-64"),
)
_ORDER_STATUS_TABLE = {
    ("COMPLETED", False, False): "COMPLETED",
    ("COMPLETED", False, True): "RETURNED",
    ("CANCELLED", True, False): "CANCELLED",
    ("CANCELLED", True, True): "CANCELLED",
}
BR1_REFUNDED_NOT_COMPLETED = "BR1: Refunded but not completed"
BR2_FAILED_INVALID_REFUND = "BR2: Failed payment with invalid refund_status"
BR3_REFUND_FLAG_MISMATCH = "BR3: is_refunded flag mismatch"
BR4_FRAUD_COMPLETED = "BR4: Fraud flagged but completed"
BR5_PENDING_REFUND_COMPLETED = "BR5: Processing/disputed status for completed"


def compute_age(birth_date: date | None, as_of: date) -> int | None:
    """Calendar-year difference between birth date and the as-of date."""
    if birth_date is None:
        return None
    return as_of.year - birth_date.year


def classify_age_group(age: int | None) -> str | None:
    """Bucket an age into the fixed reporting ladder."""
    if age is None:
        return None
    for upper_bound, label in _AGE_GROUPS:
        if age < upper_bound:
            return label
    return "65+"


def reconcile_order_status(
    status: str | None,
    is_cancelled: bool | None,
    is_returned: bool | None,
) -> str | None:
    """Resolve the final order status from the raw status and two flags.

    Args:
        status: Upper-cased raw status text.
        is_cancelled: Raw cancelled flag.
        is_returned: Raw returned flag.

    Returns:
        ``COMPLETED``, ``RETURNED``, or ``CANCELLED``; ``None`` for any
        combination outside the decision table, including null flags.
    """
    if is_cancelled is None or is_returned is None:
        return None
    return _ORDER_STATUS_TABLE.get((status, is_cancelled, is_returned))


def classify_rule_violation(
    transaction_status: str | None,
    refund_status: str | None,
    is_fraud: bool,
) -> str | None:
    """Return the first breached payment rule label, or ``None``."""
    is_refunded = transaction_status == "COMPLETED" and refund_status == "REFUNDED"
    if refund_status == "REFUNDED" and transaction_status != "COMPLETED":
        return BR1_REFUNDED_NOT_COMPLETED
    if transaction_status == "FAILED" and refund_status not in NOT_REFUNDED_STATUSES:
        return BR2_FAILED_INVALID_REFUND
    if is_refunded != (refund_status == "REFUNDED"):
        return BR3_REFUND_FLAG_MISMATCH
    if is_fraud and transaction_status == "COMPLETED":
        return BR4_FRAUD_COMPLETED
    if transaction_status == "COMPLETED" and refund_status in ("PROCESSING", "DISPUTED"):
        return BR5_PENDING_REFUND_COMPLETED
    return None


def amounts_match(left: Decimal | None, right: Decimal | None) -> bool:
    """Whether two amounts agree within the absolute tolerance."""
    if left is None or right is None:
        return False
    return abs(left - right) <= AMOUNT_TOLERANCE


def derive_customer(record: EntityRecord, context: DerivationContext) -> EntityRecord:
    """Add age and age group to a customer."""
    age = compute_age(record["birth_date"], context.today)
    return {**record, "age": age, "age_group": classify_age_group(age)}


def derive_address(record: EntityRecord, context: DerivationContext) -> EntityRecord:
    """Addresses carry no derived fields."""
    return dict(record)


def derive_payment_channel(record: EntityRecord, context: DerivationContext) -> EntityRecord:
    """Classify a payment channel as wallet, card, and/or bank transfer."""
    channel_name = record["channel_name"]
    provider_name = record["provider_name"]
    return {
        **record,
        "is_wallet": channel_name in WALLET_CHANNEL_NAMES
        or provider_name in WALLET_PROVIDER_NAMES,
        "is_card": channel_name in CARD_CHANNEL_NAMES or provider_name in CARD_PROVIDER_NAMES,
        "is_banktransfer": channel_name in BANK_TRANSFER_CHANNEL_NAMES
        or provider_name in BANK_TRANSFER_PROVIDER_NAMES,
    }


def classify_company_type(operating_country_count: int) -> str:
    """Courier reach from the number of operating countries."""
    if operating_country_count > 5:
        return "GLOBAL_COURIER"
    if operating_country_count > 2:
        return "REGIONAL_COURIER"
    return "LOCAL_COURIER"


def derive_shipment_company(record: EntityRecord, context: DerivationContext) -> EntityRecord:
    """Derive courier type and service-capability flags."""
    delivery_types = set(split_code_list(record["delivery_types"]))
    operating_countries = record["operating_countries"]
    country_count = 0 if operating_countries is None else len(operating_countries.split(","))
    service_flags = {
        f"is_{service.lower()}": service in delivery_types for service in DELIVERY_SERVICE_TYPES
    }
    return {
        **record,
        "company_type": classify_company_type(country_count),
        **service_flags,
    }


def has_delivery_service(record: EntityRecord) -> bool:
    """Whether a shipment company offers at least one delivery service."""
    return any(record[f"is_{service.lower()}"] for service in DELIVERY_SERVICE_TYPES)


def has_payment_category(record: EntityRecord) -> bool:
    """Whether a payment channel matched at least one category."""
    return bool(record["is_wallet"] or record["is_card"] or record["is_banktransfer"])


def derive_product(record: EntityRecord, context: DerivationContext) -> EntityRecord:
    """Derive profit margin and profit amount from clamped prices."""
    unit_price = record["unit_price"]
    cost_price = record["cost_price"]
    profit_margin = None
    profit_amount = None
    if unit_price is not None and cost_price is not None and unit_price > 0 and cost_price > 0:
        profit_amount = unit_price - cost_price
        if cost_price < unit_price:
            profit_margin = round_amount((unit_price - cost_price) / cost_price * 100)
    return {**record, "profit_margin": profit_margin, "profit_amount": profit_amount}


def classify_price_tier(unit_price: Decimal | None, average_price: Decimal | None) -> str:
    """Price tier relative to the population mean unit price."""
    if unit_price is None or average_price is None:
        return "UNKNOWN"
    if unit_price < average_price * Decimal("0.5"):
        return "LOW"
    if unit_price <= average_price * Decimal("1.5"):
        return "MEDIUM"
    return "HIGH"


def classify_rating(rating: Decimal | None) -> str:
    """Rating category ladder."""
    if rating is None:
        return "NOT_RATED"
    if rating >= Decimal("4.5"):
        return "EXCELLENT"
    if rating >= Decimal("4.0"):
        return "GOOD"
    if rating >= Decimal("3.0"):
        return "AVERAGE"
    return "POOR"


def score_popularity(review_count: int) -> int:
    """Popularity score from 1 to 5 by review volume."""
    for threshold, score in ((500, 5), (300, 4), (100, 3), (50, 2)):
        if review_count >= threshold:
            return score
    return 1


def classify_competitive_advantage(
    profit_margin: Decimal | None,
    rating: Decimal | None,
) -> str:
    """Combine margin and rating into a positioning label."""
    high_margin = profit_margin is not None and profit_margin > 70
    high_rating = rating is not None and rating > Decimal("4.0")
    if high_margin and high_rating:
        return "HIGH_VALUE_HIGH_QUALITY"
    if profit_margin is not None and profit_margin > 50:
        return "HIGH_VALUE"
    if high_rating:
        return "HIGH_QUALITY"
    return "STANDARD"


def derive_product_tiers(records: list[EntityRecord]) -> list[EntityRecord]:
    """Attach population-relative tiers to every admitted product.

    The mean unit price ignores null prices; with no priced product every
    price tier is ``UNKNOWN``.
    """
    prices = [record["unit_price"] for record in records if record["unit_price"] is not None]
    average_price = Decimal(mean(prices)) if prices else None
    return [
        {
            **record,
            "price_tier": classify_price_tier(record["unit_price"], average_price),
            "rating_category": classify_rating(record["rating"]),
            "popularity_score": score_popularity(record["review_count"]),
            "competitive_advantage": classify_competitive_advantage(
                record["profit_margin"], record["rating"]
            ),
        }
        for record in records
    ]


def derive_product_price(record: EntityRecord, context: DerivationContext) -> EntityRecord:
    """Product prices carry no derived fields."""
    return dict(record)


def derive_order(record: EntityRecord, context: DerivationContext) -> EntityRecord:
    """Reconcile order status and align flags and reasons with it."""
    final_status = reconcile_order_status(
        record["order_status"], record["is_cancelled"], record["is_returned"]
    )
    reason = record["return_reason"]
    return {
        **record,
        "order_datetime": datetime.combine(record["order_date"], record["order_time"]),
        "order_status": final_status,
        "is_cancelled": final_status == "CANCELLED" and record["is_cancelled"] is True,
        "is_returned": final_status == "RETURNED" and record["is_returned"] is True,
        "return_reason": reason if final_status == "RETURNED" else None,
        "cancellation_reason": reason if final_status == "CANCELLED" else None,
        "country_code": parse_country_code(record["country_code"]),
    }


def derive_order_detail(record: EntityRecord, context: DerivationContext) -> EntityRecord:
    """Recalculate the sales amount and flag disagreement with the reported one."""
    recalculated = round_amount(
        record["quantity"] * record["unit_price"] - record["discount_amount"]
    )
    sales_amount = round_amount(record["sales_amount"])
    return {
        **record,
        "unit_price": round_amount(record["unit_price"]),
        "discount_amount": round_amount(record["discount_amount"]),
        "sales_amount": sales_amount,
        "recalc_sales_amount": recalculated,
        "sales_match_flag": amounts_match(recalculated, sales_amount),
    }


def derive_invoice(record: EntityRecord, context: DerivationContext) -> EntityRecord:
    """Flag invoices whose unit price plus tax equals the final amount."""
    expected = round_amount(record["unit_price"] + record["tax_amount"])
    final_amount = round_amount(record["final_amount"])
    return {
        **record,
        "unit_price": round_amount(record["unit_price"]),
        "tax_amount": round_amount(record["tax_amount"]),
        "final_amount": final_amount,
        "is_amount_correct": expected == final_amount,
    }


def derive_invoice_detail(record: EntityRecord, context: DerivationContext) -> EntityRecord:
    """Derive line total and effective tax rate."""
    sales_amount = record["sales_amount"]
    tax_amount = record["tax_amount"]
    if sales_amount == 0:
        tax_rate = round_amount(Decimal(0), places=4)
    else:
        tax_rate = round_amount(tax_amount / sales_amount, places=4)
    return {
        **record,
        "sales_amount": round_amount(sales_amount),
        "tax_amount": round_amount(tax_amount),
        "line_total": round_amount(sales_amount + tax_amount),
        "tax_rate": tax_rate,
    }


def derive_payment(record: EntityRecord, context: DerivationContext) -> EntityRecord:
    """Derive refund and fraud flags and tag the first breached payment rule."""
    transaction_status = record["transaction_status"]
    refund_status = record["refund_status"]
    is_fraud = parse_flag_text(record["is_fraud"])
    return {
        **record,
        "final_amount": round_amount(record["final_amount"]),
        "is_fraud": is_fraud,
        "is_refunded": transaction_status == "COMPLETED" and refund_status == "REFUNDED",
        "rule_violation": classify_rule_violation(transaction_status, refund_status, is_fraud),
    }


def is_valid_status_combo(shipment_status: str | None, delivery_status: str | None) -> bool:
    """Whether a shipment/delivery status pair is on the allow-list."""
    return (shipment_status, delivery_status) in VALID_SHIPMENT_STATUS_COMBOS


def derive_shipment(record: EntityRecord, context: DerivationContext) -> EntityRecord:
    """Derive transit days, outcome flags, and status-combination validity."""
    delivery_status = record["delivery_status"]
    shipment_status = record["shipment_status"]
    return {
        **record,
        "transit_days": (record["delivery_date"] - record["shipment_date"]).days,
        "is_delayed": delivery_status == "DELAYED",
        "is_failed": delivery_status == "FAILED",
        "is_returned_delivery": delivery_status == "RETURNED",
        "is_lost": shipment_status == "LOST",
        "is_valid_status_combo": is_valid_status_combo(shipment_status, delivery_status),
    }
