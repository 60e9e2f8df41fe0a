"""Explicit foreign-key dependency graph between entities.

Processing order is derived from declared foreign keys by topological sort,
never from declaration position. Entities in the same level have no
dependency between them and may run concurrently.
"""

from __future__ import annotations

from graphlib import CycleError, TopologicalSorter
from typing import Sequence

from core.errors import SilverlineTransformError
from transforms.entity_spec import EntitySpec


def resolve_stage_levels(specs: Sequence[EntitySpec]) -> tuple[tuple[EntitySpec, ...], ...]:
    """Group entity specs into dependency levels.

    Args:
        specs: Registered entity specs.

    Returns:
        Levels in execution order; each level keeps declaration order.

    Raises:
        SilverlineTransformError: On unknown parents or dependency cycles.
    """
    by_name = {spec.name: spec for spec in specs}
    declaration_rank = {spec.name: index for index, spec in enumerate(specs)}
    sorter: TopologicalSorter[str] = TopologicalSorter()
    for spec in specs:
        for parent in spec.parents:
            if parent not in by_name:
                raise SilverlineTransformError(
                    f"Entity '{spec.name}' references unknown parent '{parent}'. "
                    "Register the parent entity or fix the foreign key declaration.",
                    code="E_DEPENDENCY_UNKNOWN",
                    entity=spec.name,
                )
        sorter.add(spec.name, *spec.parents)
    try:
        sorter.prepare()
    except CycleError as error:
        cycle = " -> ".join(str(node) for node in error.args[1])
        raise SilverlineTransformError(
            f"Entity dependencies contain a cycle: {cycle}. Remove one of the foreign keys.",
            code="E_DEPENDENCY_CYCLE",
        ) from error
    levels: list[tuple[EntitySpec, ...]] = []
    while sorter.is_active():
        ready = sorted(sorter.get_ready(), key=declaration_rank.__getitem__)
        levels.append(tuple(by_name[name] for name in ready))
        sorter.done(*ready)
    return tuple(levels)


def resolve_stage_order(specs: Sequence[EntitySpec]) -> tuple[EntitySpec, ...]:
    """Flatten dependency levels into one sequential execution order."""
    return tuple(spec for level in resolve_stage_levels(specs) for spec in level)
