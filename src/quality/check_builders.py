"""Generic check builders bound to one validated table.

Each builder returns a ``CheckDefinition`` whose evaluator scans the
table's records in stored order, so a rule is declared in one call.
"""

from __future__ import annotations

import re
from collections import Counter
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Callable, Collection, Iterator

from core.types import EntityRecord, IssueCategory
from core.value_format import render_key, render_value
from quality.catalog import CheckDefinition, Finding, ScanContext
from transforms.entity_spec import EntitySpec

RecordPredicate = Callable[[EntityRecord, ScanContext], bool]
RecordRenderer = Callable[[EntityRecord], str | None]


class TableCheckBuilder:
    """Factory for checks over one entity's validated table."""

    def __init__(self, spec: EntitySpec) -> None:
        self._table = spec.table
        self._natural_key = spec.natural_key

    @property
    def table(self) -> str:
        """Validated table the built checks scan."""
        return self._table

    def not_null(self, column: str, message: str | None = None) -> CheckDefinition:
        """Flag records whose column is null."""
        return self.predicate(
            column,
            "null_check",
            message or f"{column} is NULL",
            lambda record, _: record.get(column) is None,
        )

    def not_blank(self, column: str, message: str | None = None) -> CheckDefinition:
        """Flag records whose column is null or whitespace-only text."""
        return self.predicate(
            column,
            "null_check",
            message or f"{column} is NULL or empty",
            lambda record, _: _is_blank(record.get(column)),
        )

    def unique(self, column: str, message: str | None = None) -> CheckDefinition:
        """Flag each non-null value that appears on more than one record.

        One finding is produced per duplicated value; both the value and
        the primary key carry that value.
        """
        table = self._table

        def _evaluate(context: ScanContext) -> Iterator[Finding]:
            counts = Counter(
                render_value(record.get(column))
                for record in context.records(table)
                if record.get(column) is not None
            )
            for value in sorted(value for value, count in counts.items() if count > 1):
                yield Finding(value=value, primary_key=value)

        return CheckDefinition(
            table=table,
            column=column,
            category="duplicate_key",
            message=message or f"{column} is duplicated",
            evaluate=_evaluate,
        )

    def max_length(self, column: str, limit: int) -> CheckDefinition:
        """Flag text values longer than ``limit`` characters."""
        return self.predicate(
            column,
            "format",
            f"{column} length exceeds {limit} characters",
            lambda record, _: record.get(column) is not None and len(record[column]) > limit,
        )

    def pattern(self, column: str, regex: str, message: str) -> CheckDefinition:
        """Flag non-null values that do not fully match a regular expression."""
        compiled = re.compile(regex)
        return self.predicate(
            column,
            "format",
            message,
            lambda record, _: record.get(column) is not None
            and compiled.fullmatch(str(record[column])) is None,
        )

    def domain(
        self,
        column: str,
        allowed: Collection[str],
        message: str | None = None,
        canonical: Callable[[str], str] = str.upper,
    ) -> CheckDefinition:
        """Flag non-null values outside an allowed vocabulary.

        Args:
            column: Checked column.
            allowed: Permitted canonical values.
            message: Issue text; defaults to ``<column> value is not allowed``.
            canonical: Maps a stored value to its comparison form.
        """
        return self.predicate(
            column,
            "domain",
            message or f"{column} value is not allowed",
            lambda record, _: record.get(column) is not None
            and canonical(record[column]) not in allowed,
        )

    def out_of_range(
        self,
        column: str,
        message: str,
        lower: Decimal | int | None = None,
        upper: Decimal | int | None = None,
        lower_inclusive: bool = True,
        flag_null: bool = False,
    ) -> CheckDefinition:
        """Flag numeric values outside ``[lower, upper]``.

        Args:
            column: Checked column.
            message: Issue text.
            lower: Smallest allowed value, if bounded below.
            upper: Largest allowed value, if bounded above.
            lower_inclusive: Whether ``lower`` itself is allowed.
            flag_null: Whether a null value is itself a finding.
        """

        def _violates(record: EntityRecord, _: ScanContext) -> bool:
            value = record.get(column)
            if value is None:
                return flag_null
            if lower is not None and (value < lower or (not lower_inclusive and value == lower)):
                return True
            return upper is not None and value > upper

        return self.predicate(column, "out_of_range", message, _violates)

    def not_in_future(self, column: str) -> CheckDefinition:
        """Flag dates after the as-of date and datetimes after the as-of time."""
        return self.predicate(
            column,
            "out_of_range",
            f"{column} is in the future",
            lambda record, context: _is_after(record.get(column), context.as_of),
        )

    def not_before(self, column: str, floor: date) -> CheckDefinition:
        """Flag dates or datetimes earlier than ``floor``."""
        return self.predicate(
            column,
            "out_of_range",
            f"{column} is before {floor.isoformat()}",
            lambda record, _: _is_before(record.get(column), floor),
        )

    def references(
        self,
        column: str,
        parent: EntitySpec,
        parent_column: str | None = None,
    ) -> CheckDefinition:
        """Flag non-null values with no matching key in a parent table."""
        table = self._table
        natural_key = self._natural_key
        target_column = parent_column or column

        def _evaluate(context: ScanContext) -> Iterator[Finding]:
            parent_values = {
                record.get(target_column) for record in context.records(parent.table)
            }
            for record in context.records(table):
                value = record.get(column)
                if value is not None and value not in parent_values:
                    yield Finding(
                        value=render_value(value),
                        primary_key=render_key(record, natural_key),
                    )

        return CheckDefinition(
            table=table,
            column=column,
            category="referential",
            message=f"{column} does not exist in {parent.table}",
            evaluate=_evaluate,
        )

    def predicate(
        self,
        column: str | None,
        category: IssueCategory,
        message: str,
        violates: RecordPredicate,
        render: RecordRenderer | None = None,
    ) -> CheckDefinition:
        """Flag every record for which ``violates`` holds.

        Args:
            column: Checked column or ``None`` for row-level rules.
            category: Issue category.
            message: Issue text.
            violates: Returns ``True`` for an offending record.
            render: Builds the finding value; defaults to the column value.
        """
        table = self._table
        natural_key = self._natural_key
        renderer = render or column_value(column)

        def _evaluate(context: ScanContext) -> Iterator[Finding]:
            for record in context.records(table):
                if violates(record, context):
                    yield Finding(
                        value=renderer(record),
                        primary_key=render_key(record, natural_key),
                    )

        return CheckDefinition(
            table=table,
            column=column,
            category=category,
            message=message,
            evaluate=_evaluate,
        )


def labelled_values(*columns: str, labels: tuple[str, ...] | None = None) -> RecordRenderer:
    """Render several columns as ``label:value`` pairs joined by ``, ``.

    Null values render as empty text after the label.
    """
    names = labels or columns

    def _render(record: EntityRecord) -> str | None:
        parts = []
        for name, column in zip(names, columns):
            value = render_value(record.get(column))
            parts.append(f"{name}:{'' if value is None else value}")
        return ", ".join(parts)

    return _render


def compact_canonical(value: str) -> str:
    """Upper-case comparison form with spaces removed."""
    return value.replace(" ", "").upper()


def column_value(column: str | None) -> RecordRenderer:
    """Render one column of the record; row-level checks render nothing."""
    if column is None:
        return lambda _: None
    return lambda record: render_value(record.get(column))


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _is_after(value: Any, as_of: datetime) -> bool:
    if value is None:
        return False
    if isinstance(value, datetime):
        return value > as_of
    return value > as_of.date()


def _is_before(value: Any, floor: date) -> bool:
    if value is None:
        return False
    if isinstance(value, datetime):
        return value < datetime.combine(floor, time())
    return value < floor
