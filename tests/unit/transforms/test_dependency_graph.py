"""Unit tests for entity dependency ordering."""

from __future__ import annotations

from dataclasses import replace

import pytest

from core.errors import SilverlineTransformError
from transforms.dependency_graph import resolve_stage_levels, resolve_stage_order
from transforms.entity_catalog import ADDRESS, CUSTOMER, ENTITY_SPECS, ORDER
from transforms.entity_spec import ForeignKey


def test_resolve_stage_order_places_parents_first() -> None:
    """Every entity should run after all of its parents."""
    order = [spec.name for spec in resolve_stage_order(ENTITY_SPECS)]

    assert all(
        order.index(parent) < order.index(spec.name)
        for spec in ENTITY_SPECS
        for parent in spec.parents
    )


def test_resolve_stage_levels_groups_independent_roots() -> None:
    """Entities without parents should share the first level."""
    levels = resolve_stage_levels(ENTITY_SPECS)

    assert [spec.name for spec in levels[0]] == [
        "customer",
        "payment_channel",
        "shipment_company",
        "product",
        "product_price",
    ]


def test_resolve_stage_levels_is_independent_of_declaration_order() -> None:
    """Reversed declarations should still schedule orders after customers."""
    reversed_specs = (ORDER, ADDRESS, *ENTITY_SPECS[2:6], CUSTOMER)

    order = [spec.name for spec in resolve_stage_order(reversed_specs)]

    assert order.index("customer") < order.index("address") < order.index("order")


def test_resolve_stage_levels_rejects_unknown_parent() -> None:
    """A foreign key to an unregistered entity should fail."""
    with pytest.raises(SilverlineTransformError):
        resolve_stage_levels((ADDRESS,))


def test_resolve_stage_levels_rejects_cycles() -> None:
    """Mutually dependent entities should fail with a cycle error."""
    looped_customer = replace(
        CUSTOMER, foreign_keys=(ForeignKey("customer_id", "address", "customer_id"),)
    )

    with pytest.raises(SilverlineTransformError) as error_info:
        resolve_stage_levels((looped_customer, ADDRESS))

    assert error_info.value.code == "E_DEPENDENCY_CYCLE"
