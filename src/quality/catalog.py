"""Registry of data-quality checks.

Checks are independent: each reads validated tables through a
``ScanContext`` and yields findings without looking at other checks'
results. The catalog grows by registration only.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Iterable, Iterator, Mapping, Sequence

from core.errors import SilverlineQualityError
from core.types import EntityRecord, IssueCategory


@dataclass(frozen=True)
class Finding:
    """One violation produced by a check.

    Attributes:
        value: Offending value rendered as text.
        primary_key: Rendered natural key of the offending record.
    """

    value: str | None
    primary_key: str | None


@dataclass(frozen=True)
class ScanContext:
    """Read-only inputs for one scan.

    Attributes:
        tables: Validated records by table name.
        as_of: Timestamp standing in for "now" in date checks.
    """

    tables: Mapping[str, Sequence[EntityRecord]]
    as_of: datetime

    @property
    def today(self) -> date:
        """Calendar date of the as-of timestamp."""
        return self.as_of.date()

    def records(self, table: str) -> Sequence[EntityRecord]:
        """Return validated records for one table.

        Raises:
            SilverlineQualityError: If the table is not part of the scanned version.
        """
        if table not in self.tables:
            raise SilverlineQualityError(
                f"Table '{table}' is missing from the validated layer. "
                "Re-run the transform before scanning.",
                code="E_SCAN_TABLE",
                entity=table,
            )
        return self.tables[table]


CheckEvaluator = Callable[[ScanContext], Iterable[Finding]]


@dataclass(frozen=True)
class CheckDefinition:
    """Declared data-quality check.

    Attributes:
        table: Validated table the check scans.
        column: Checked column, or ``None`` for row-level checks.
        category: Issue category recorded on findings.
        message: Issue text recorded on findings.
        evaluate: Yields findings for one scan context.
    """

    table: str
    column: str | None
    category: IssueCategory
    message: str
    evaluate: CheckEvaluator

    @property
    def check_id(self) -> str:
        """Stable identity of the check within a catalog."""
        return f"{self.table}/{self.category}/{self.message}"


class CheckCatalog:
    """Ordered collection of uniquely identified checks."""

    def __init__(self, checks: Iterable[CheckDefinition] = ()) -> None:
        self._checks: dict[str, CheckDefinition] = {}
        self.extend(checks)

    def register(self, check: CheckDefinition) -> None:
        """Add one check.

        Raises:
            SilverlineQualityError: If a check with the same id exists.
        """
        if check.check_id in self._checks:
            raise SilverlineQualityError(
                f"Duplicate data-quality check '{check.check_id}'. "
                "Give the new check a distinct message.",
                code="E_CHECK_DUPLICATE",
                entity=check.table,
            )
        self._checks[check.check_id] = check

    def extend(self, checks: Iterable[CheckDefinition]) -> None:
        """Register several checks in order."""
        for check in checks:
            self.register(check)

    def for_table(self, table: str) -> tuple[CheckDefinition, ...]:
        """Checks that scan one table, in registration order."""
        return tuple(check for check in self._checks.values() if check.table == table)

    @property
    def tables(self) -> tuple[str, ...]:
        """Scanned tables in first-registration order."""
        return tuple(dict.fromkeys(check.table for check in self._checks.values()))

    def __iter__(self) -> Iterator[CheckDefinition]:
        return iter(self._checks.values())

    def __len__(self) -> int:
        return len(self._checks)

