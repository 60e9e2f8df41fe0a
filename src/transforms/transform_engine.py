"""Generic entity transform executor.

One executor serves every entity: it normalizes raw rows, applies the
candidate filter, deduplicates by natural key, derives business fields,
gates on required fields, domains, and foreign keys, and projects the
admitted records onto the entity's output schema.
"""

from __future__ import annotations

from typing import Mapping, Sequence

from core.errors import SilverlineTransformError
from core.types import ColumnType, EntityRecord, Rejection, RejectionStage, StageResult
from core.value_format import render_key
from transforms.deduplication import select_winners
from transforms.entity_spec import DerivationContext, EntitySpec

LOAD_TIMESTAMP_COLUMN = "dwh_load_date"

RawRow = Mapping[str, str | None]


def normalize_record(spec: EntitySpec, raw_row: RawRow) -> EntityRecord:
    """Apply every column normalizer to one raw row."""
    return {
        column: normalize(raw_row.get(column)) for column, normalize in spec.normalizers.items()
    }


def run_entity_stage(
    spec: EntitySpec,
    raw_rows: Sequence[RawRow],
    parent_keys: Mapping[str, frozenset[object]],
    context: DerivationContext,
) -> StageResult:
    """Transform one entity's raw rows into validated records.

    Args:
        spec: Entity transform specification.
        raw_rows: Raw extract rows keyed by raw column name.
        parent_keys: Validated key values per parent entity name.
        context: Run-wide derivation context.

    Returns:
        Stage result with admitted records sorted by natural key.

    Raises:
        SilverlineTransformError: If a derivation does not produce a
            declared output column.
    """
    rejections: list[Rejection] = []
    candidates: list[EntityRecord] = []
    for raw_row in raw_rows:
        record = normalize_record(spec, raw_row)
        reason = _candidate_failure(spec, record, context)
        if reason is None:
            candidates.append(record)
        else:
            rejections.append(_rejection(spec, record, "candidate_filter", reason))
    winners = select_winners(candidates, spec.natural_key, spec.ranking)
    admitted: list[EntityRecord] = []
    for winner in winners:
        derived = spec.derive(winner, context)
        gate_reason = _gate_failure(spec, derived, context)
        if gate_reason is not None:
            rejections.append(_rejection(spec, derived, "gate", gate_reason))
            continue
        orphan_column = _unresolved_foreign_key(spec, derived, parent_keys)
        if orphan_column is not None:
            rejections.append(_rejection(spec, derived, "referential", f"orphan:{orphan_column}"))
            continue
        admitted.append(derived)
    if spec.population_derive is not None:
        admitted = spec.population_derive(admitted)
    records = sorted(
        (_project(spec, record, context) for record in admitted),
        key=lambda record: tuple(record[column] for column in spec.natural_key),
    )
    return StageResult(
        entity=spec.name,
        table=spec.table,
        raw_count=len(raw_rows),
        candidate_count=len(candidates),
        deduplicated_count=len(winners),
        admitted_count=len(records),
        records=tuple(records),
        rejections=tuple(rejections),
    )


def collect_key_values(records: Sequence[EntityRecord], column: str) -> frozenset[object]:
    """Collect the values of one column that children may reference."""
    return frozenset(record[column] for record in records)


def _candidate_failure(
    spec: EntitySpec,
    record: EntityRecord,
    context: DerivationContext,
) -> str | None:
    for column in spec.natural_key:
        if record[column] is None:
            return f"missing_key:{column}"
    for rule in spec.candidate_rules:
        if not rule.predicate(record, context):
            return rule.reason
    return None


def _gate_failure(
    spec: EntitySpec,
    record: EntityRecord,
    context: DerivationContext,
) -> str | None:
    for column in spec.required:
        if record.get(column) is None:
            return f"missing:{column}"
    for rule in spec.gate_rules:
        if not rule.predicate(record, context):
            return rule.reason
    return None


def _unresolved_foreign_key(
    spec: EntitySpec,
    record: EntityRecord,
    parent_keys: Mapping[str, frozenset[object]],
) -> str | None:
    for foreign_key in spec.foreign_keys:
        value = record.get(foreign_key.column)
        if value is None:
            continue
        if value not in parent_keys.get(foreign_key.parent, frozenset()):
            return foreign_key.column
    return None


def _project(spec: EntitySpec, record: EntityRecord, context: DerivationContext) -> EntityRecord:
    missing = [column for column in spec.columns if column not in record]
    if missing:
        raise SilverlineTransformError(
            f"Derivation for '{spec.name}' did not produce columns: {', '.join(missing)}. "
            "Fix the entity derivation to emit every declared column.",
            code="E_STAGE_DEFECT",
            entity=spec.name,
        )
    projected = {column: record[column] for column in spec.columns}
    projected[LOAD_TIMESTAMP_COLUMN] = context.as_of
    return projected


def _rejection(
    spec: EntitySpec,
    record: EntityRecord,
    stage: RejectionStage,
    reason: str,
) -> Rejection:
    return Rejection(
        entity=spec.name,
        primary_key=render_key(record, spec.natural_key),
        stage=stage,
        reason=reason,
    )


def output_schema(spec: EntitySpec) -> dict[str, ColumnType]:
    """Column schema of an entity's validated table, load timestamp included."""
    return {**spec.columns, LOAD_TIMESTAMP_COLUMN: "datetime"}
