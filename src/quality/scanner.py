"""Data-quality scan over the latest validated layer.

This module evaluates every catalog check against one silver version and
publishes the complete issue set as a new ``dq`` layer version. The issue
table is fully replaced on each scan.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Sequence

from core.config import SilverlineConfig
from core.constants import DQ_LAYER_NAME, ISSUE_TABLE_NAME, REJECTION_TABLE_NAME, SILVER_LAYER_NAME
from core.errors import SilverlineError, SilverlineQualityError
from core.logging_config import get_logger
from core.types import ColumnType, EntityRecord, Issue, ScanReport
from quality.catalog import CheckCatalog, CheckDefinition, Finding, ScanContext
from quality.rules import build_default_catalog
from store.catalog_io import utc_now
from store.table_codec import TablePayload
from store.warehouse_store import WarehouseStore

_LOGGER = get_logger(__name__)

ISSUE_COLUMNS: dict[str, ColumnType] = {
    "issue_id": "int",
    "table": "str",
    "column": "str",
    "type": "str",
    "message": "str",
    "value": "str",
    "primary_key": "str",
    "detected_at": "datetime",
}


class DataQualityScanner:
    """Runner for one full rebuild of the issue table."""

    def __init__(self, config: SilverlineConfig, catalog: CheckCatalog | None = None) -> None:
        self._config = config
        self._catalog = catalog or build_default_catalog()
        self._store = WarehouseStore(config)

    def run(self) -> ScanReport:
        """Scan the latest silver version and publish its issues.

        Returns:
            Report with the published dq version and issue count.

        Raises:
            SilverlineStoreError: If no silver version exists or publishing fails.
            SilverlineQualityError: If a check cannot be evaluated.
        """
        silver_manifest, tables = self._store.load_tables(SILVER_LAYER_NAME)
        tables.pop(REJECTION_TABLE_NAME, None)
        detected_at = utc_now().replace(tzinfo=None, microsecond=0)
        context = ScanContext(tables=tables, as_of=silver_manifest.as_of)
        issues = evaluate_catalog(self._catalog, context, detected_at)
        manifest = self._store.publish(
            DQ_LAYER_NAME,
            [
                TablePayload(
                    name=ISSUE_TABLE_NAME,
                    columns=ISSUE_COLUMNS,
                    records=tuple(issue_to_record(issue) for issue in issues),
                )
            ],
            as_of=silver_manifest.as_of,
            parent_version=silver_manifest.version_id,
            details={
                "check_count": len(self._catalog),
                "issue_counts": _issue_counts_by_table(issues),
            },
        )
        report = ScanReport(
            version_id=manifest.version_id,
            silver_version=silver_manifest.version_id,
            check_count=len(self._catalog),
            issue_count=len(issues),
            detected_at=detected_at,
        )
        _LOGGER.info(
            "dq_scan_completed",
            version_id=report.version_id,
            silver_version=report.silver_version,
            check_count=report.check_count,
            issue_count=report.issue_count,
        )
        return report


def run_dq_scan(config: SilverlineConfig) -> ScanReport:
    """Rebuild the issue table from the latest validated layer.

    Args:
        config: Runtime configuration.

    Returns:
        Scan report for the published dq version.
    """
    scanner = DataQualityScanner(config)
    return scanner.run()


def evaluate_catalog(
    catalog: CheckCatalog,
    context: ScanContext,
    detected_at: datetime,
) -> list[Issue]:
    """Evaluate every check in catalog order.

    Issue ids are assigned sequentially from 1 in evaluation order, so the
    same validated snapshot always yields the same ids.

    Raises:
        SilverlineQualityError: If a check raises while evaluating.
    """
    issues: list[Issue] = []
    for check in catalog:
        for finding in _evaluate_check(check, context):
            issues.append(
                Issue(
                    issue_id=len(issues) + 1,
                    table=check.table,
                    column=check.column,
                    issue_type=check.category,
                    message=check.message,
                    value=finding.value,
                    primary_key=finding.primary_key,
                    detected_at=detected_at,
                )
            )
    return issues


def issue_to_record(issue: Issue) -> EntityRecord:
    """Convert an issue to a stored issue-table row."""
    return {
        "issue_id": issue.issue_id,
        "table": issue.table,
        "column": issue.column,
        "type": issue.issue_type,
        "message": issue.message,
        "value": issue.value,
        "primary_key": issue.primary_key,
        "detected_at": issue.detected_at,
    }


def issue_from_record(record: EntityRecord) -> Issue:
    """Convert a stored issue-table row back to an issue."""
    return Issue(
        issue_id=int(record["issue_id"]),
        table=str(record["table"]),
        column=None if record["column"] is None else str(record["column"]),
        issue_type=record["type"],
        message=str(record["message"]),
        value=None if record["value"] is None else str(record["value"]),
        primary_key=None if record["primary_key"] is None else str(record["primary_key"]),
        detected_at=record["detected_at"],
    )


def _evaluate_check(check: CheckDefinition, context: ScanContext) -> list[Finding]:
    try:
        return list(check.evaluate(context))
    except SilverlineError:
        raise
    except Exception as error:
        _LOGGER.error(
            "check_failed",
            check_id=check.check_id,
            table=check.table,
            message=str(error),
        )
        raise SilverlineQualityError(
            f"Data-quality check '{check.check_id}' failed: {error}. "
            "Fix the check declaration or the validated data, then re-run the scan.",
            code="E_CHECK_FAILED",
            entity=check.table,
        ) from error


def _issue_counts_by_table(issues: Sequence[Issue]) -> dict[str, int]:
    return dict(sorted(Counter(issue.table for issue in issues).items()))
