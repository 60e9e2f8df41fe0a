"""Issue aggregation for monitoring output."""

from __future__ import annotations

from collections import Counter
from typing import Iterable

from core.types import Issue, IssueSummaryRow


def summarize_issues(issues: Iterable[Issue]) -> list[IssueSummaryRow]:
    """Count issues per table, column, type and message.

    Args:
        issues: Issues from one scan.

    Returns:
        Summary rows ordered by count descending, then by table, column,
        type and message so equal counts keep a stable order.
    """
    counts = Counter(
        (issue.table, issue.column, issue.issue_type, issue.message) for issue in issues
    )
    rows = [
        IssueSummaryRow(
            table=table,
            column=column,
            issue_type=issue_type,
            message=message,
            count=count,
        )
        for (table, column, issue_type, message), count in counts.items()
    ]
    return sorted(
        rows,
        key=lambda row: (-row.count, row.table, row.column or "", row.issue_type, row.message),
    )
