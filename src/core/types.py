"""Shared typed models.

This module defines immutable data models used by the transform engine,
quality scanner, store, and SDK layers to keep interfaces explicit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Mapping

ColumnType = Literal["str", "int", "decimal", "bool", "date", "datetime"]
IssueCategory = Literal[
    "null_check",
    "duplicate_key",
    "format",
    "domain",
    "out_of_range",
    "referential",
    "consistency",
    "business_rule",
]
RejectionStage = Literal["candidate_filter", "gate", "referential"]
LayerName = Literal["silver", "dq"]

EntityRecord = dict[str, Any]
"""One row keyed by column name; values are already typed."""


@dataclass(frozen=True)
class Rejection:
    """Audit row for a record excluded from the validated store.

    Attributes:
        entity: Entity name that excluded the record.
        primary_key: Rendered natural key, or ``None`` when the key is null.
        stage: Engine step that excluded the record.
        reason: Short machine-readable reason, e.g. ``missing:order_status_fnl``.
    """

    entity: str
    primary_key: str | None
    stage: RejectionStage
    reason: str


@dataclass(frozen=True)
class StageResult:
    """Outcome of one entity stage.

    Attributes:
        entity: Entity name.
        table: Output table name.
        raw_count: Rows read from the raw extract.
        candidate_count: Rows that passed the candidate filter.
        deduplicated_count: Winners after deduplication.
        admitted_count: Rows admitted by the gate.
        records: Admitted records ordered by natural key.
        rejections: Audit rows for every excluded record.
    """

    entity: str
    table: str
    raw_count: int
    candidate_count: int
    deduplicated_count: int
    admitted_count: int
    records: tuple[EntityRecord, ...]
    rejections: tuple[Rejection, ...] = ()


@dataclass(frozen=True)
class LayerManifest:
    """Immutable metadata for one published warehouse layer version.

    Attributes:
        layer: Layer name (``silver`` or ``dq``).
        version_id: Immutable version id.
        created_at: UTC creation timestamp.
        as_of: Run as-of timestamp used for date rules.
        parent_version: Silver version scanned, for DQ versions.
        table_counts: Row count per stored table.
    """

    layer: LayerName
    version_id: str
    created_at: datetime
    as_of: datetime
    parent_version: str | None
    table_counts: Mapping[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class TransformReport:
    """Summary of a full transform run."""

    version_id: str
    as_of: datetime
    stages: tuple[StageResult, ...]

    @property
    def rejected_count(self) -> int:
        """Total number of rows excluded across all stages."""
        return sum(len(stage.rejections) for stage in self.stages)


@dataclass(frozen=True)
class Issue:
    """One detected data-quality violation.

    Attributes:
        issue_id: Sequential id within one scan, starting at 1.
        table: Validated table the issue was found in.
        column: Offending column, or ``None`` for row-level checks.
        issue_type: Check category.
        message: Human-readable issue text.
        value: Offending value rendered as text.
        primary_key: Rendered natural key of the offending record.
        detected_at: Scan timestamp.
    """

    issue_id: int
    table: str
    column: str | None
    issue_type: IssueCategory
    message: str
    value: str | None
    primary_key: str | None
    detected_at: datetime


@dataclass(frozen=True)
class ScanReport:
    """Summary of a DQ scan run."""

    version_id: str
    silver_version: str
    check_count: int
    issue_count: int
    detected_at: datetime


@dataclass(frozen=True)
class IssueSummaryRow:
    """Grouped issue count for monitoring output."""

    table: str
    column: str | None
    issue_type: str
    message: str
    count: int
