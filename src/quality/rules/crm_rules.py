"""Health checks for CRM customer tables."""

from __future__ import annotations

from quality.catalog import CheckDefinition
from quality.check_builders import TableCheckBuilder
from transforms.entity_catalog import ADDRESS, CUSTOMER

_POSTAL_CODE_PATTERN = r"[A-Za-z0-9-]{3,10}"


def build_checks() -> list[CheckDefinition]:
    """Checks for ``crm_customer`` and ``crm_customer_addresses``."""
    return [*_customer_checks(), *_address_checks()]


def _customer_checks() -> list[CheckDefinition]:
    customer = TableCheckBuilder(CUSTOMER)
    return [
        customer.not_null("customer_id"),
        customer.not_blank("email"),
        customer.not_blank("username"),
        customer.unique("customer_id"),
        customer.predicate(
            "email",
            "format",
            "email format is invalid",
            lambda record, _: record["email"] is not None
            and ("@" not in record["email"] or "." not in record["email"]),
        ),
        customer.domain("gender", ("M", "F"), "gender value is invalid"),
        customer.not_in_future("birth_date"),
        customer.not_blank("phone_number"),
        customer.not_null("is_loyalty_member"),
        customer.not_null("is_fraud_suspected"),
        customer.not_in_future("registration_datetime"),
    ]


def _address_checks() -> list[CheckDefinition]:
    address = TableCheckBuilder(ADDRESS)
    return [
        address.not_null("address_id"),
        address.not_null("customer_id"),
        address.references("customer_id", CUSTOMER),
        address.pattern(
            "postal_code",
            _POSTAL_CODE_PATTERN,
            "postal_code is invalid (non-alphanumeric or wrong length)",
        ),
    ]
