"""Warehouse health-check declarations grouped by subject area."""

from __future__ import annotations

from quality.catalog import CheckCatalog
from quality.rules import crm_rules, fulfillment_rules, reference_rules, sales_rules


def build_default_catalog() -> CheckCatalog:
    """Build the catalog of every warehouse health check.

    Returns:
        Catalog ordered CRM, reference, sales, then fulfillment checks.
    """
    catalog = CheckCatalog()
    catalog.extend(crm_rules.build_checks())
    catalog.extend(reference_rules.build_checks())
    catalog.extend(sales_rules.build_checks())
    catalog.extend(fulfillment_rules.build_checks())
    return catalog
