"""Python SDK for warehouse operations.

This module exposes high-level APIs for the transform and scan runs and
for reading the validated tables, the issue table, and the exclusion
audit back from the versioned store.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from core.config import SilverlineConfig, parse_as_of
from core.constants import DQ_LAYER_NAME, ISSUE_TABLE_NAME, REJECTION_TABLE_NAME, SILVER_LAYER_NAME
from core.errors import SilverlineStoreError
from core.run_spec_execution import execute_run_spec_file
from core.types import (
    EntityRecord,
    Issue,
    IssueSummaryRow,
    Rejection,
    ScanReport,
    TransformReport,
)
from ingest.pipeline import run_transform
from quality.issue_summary import summarize_issues
from quality.scanner import issue_from_record, run_dq_scan
from store.warehouse_store import WarehouseStore
from transforms.entity_catalog import entity_spec_by_name


class SilverlineClient:
    """Primary SDK entry point for warehouse workflows."""

    def __init__(self, config: SilverlineConfig | None = None) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
        """
        self._config = config or SilverlineConfig.from_env()
        self._store = WarehouseStore(self._config)

    @property
    def config(self) -> SilverlineConfig:
        """Runtime configuration used by this client."""
        return self._config

    def run_transform(self) -> TransformReport:
        """Rebuild the validated entity layer from the raw extracts.

        Returns:
            Transform report for the published silver version.

        Raises:
            SilverlineExtractError: If a raw extract is missing or malformed.
            SilverlineTransformError: If a stage fails.
            SilverlineStoreError: If publishing fails.
        """
        return run_transform(self._config)

    def run_dq_scan(self) -> ScanReport:
        """Rebuild the issue table from the latest validated layer.

        Returns:
            Scan report for the published dq version.
        """
        return run_dq_scan(self._config)

    def load_table(self, entity: str) -> list[EntityRecord]:
        """Load one validated entity table.

        Args:
            entity: Entity name (``order``) or table name (``erp_orders``).

        Returns:
            Validated records ordered by natural key.

        Raises:
            SilverlineStoreError: If the entity is unknown or not yet built.
        """
        try:
            spec = entity_spec_by_name(entity)
        except KeyError as error:
            raise SilverlineStoreError(
                f"Unknown entity '{entity}'. Use an entity or table name from the catalog.",
                code="E_UNKNOWN_ENTITY",
            ) from error
        _, records = self._store.load_table(SILVER_LAYER_NAME, spec.table)
        return records

    def load_issues(self) -> list[Issue]:
        """Load every issue from the latest scan, ordered by issue id."""
        _, records = self._store.load_table(DQ_LAYER_NAME, ISSUE_TABLE_NAME)
        issues = [issue_from_record(record) for record in records]
        return sorted(issues, key=lambda issue: issue.issue_id)

    def summarize_issues(self) -> list[IssueSummaryRow]:
        """Count the latest issues per table, column, type and message."""
        return summarize_issues(self.load_issues())

    def load_rejections(self, entity: str | None = None) -> list[Rejection]:
        """Load the exclusion audit of the latest transform.

        Args:
            entity: Optional entity name filter.

        Returns:
            Audit rows in stage order.
        """
        _, records = self._store.load_table(SILVER_LAYER_NAME, REJECTION_TABLE_NAME)
        rejections = [
            Rejection(
                entity=str(record["entity"]),
                primary_key=record["primary_key"],
                stage=record["stage"],
                reason=str(record["reason"]),
            )
            for record in records
        ]
        if entity is None:
            return rejections
        return [rejection for rejection in rejections if rejection.entity == entity]

    def table_counts(self) -> dict[str, int]:
        """Row count per table of the latest validated version."""
        manifest = self._store.latest_manifest(SILVER_LAYER_NAME)
        return dict(manifest.table_counts)

    def with_data_root(self, data_root: str) -> "SilverlineClient":
        """Clone the client with a different local data root.

        Args:
            data_root: New data root path.

        Returns:
            New SDK client instance.
        """
        resolved_root = Path(data_root).expanduser().resolve()
        return SilverlineClient(replace(self._config, data_root=resolved_root))

    def with_overrides(
        self,
        source_uri: str | None = None,
        as_of: str | None = None,
    ) -> "SilverlineClient":
        """Clone the client with a different extract root or as-of time.

        Args:
            source_uri: Raw extract root, local or ``s3://``.
            as_of: ISO-8601 date or datetime.

        Returns:
            New SDK client instance.
        """
        updated_config = self._config
        if source_uri is not None:
            updated_config = replace(updated_config, source_uri=source_uri)
        if as_of is not None:
            updated_config = replace(updated_config, as_of=parse_as_of(as_of))
        return SilverlineClient(updated_config)

    def run_spec(self, spec_file: str) -> tuple[str, ...]:
        """Execute a YAML run-spec through the shared execution engine.

        Args:
            spec_file: Path to YAML run-spec file.

        Returns:
            Ordered command output lines.
        """
        return execute_run_spec_file(self, spec_file)
