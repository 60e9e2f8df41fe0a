"""Unit tests for issue aggregation."""

from __future__ import annotations

from datetime import datetime

from core.types import Issue, IssueSummaryRow
from quality.issue_summary import summarize_issues


def _issue(issue_id: int, table: str, column: str | None, message: str) -> Issue:
    return Issue(
        issue_id=issue_id,
        table=table,
        column=column,
        issue_type="null_check",
        message=message,
        value=None,
        primary_key=str(issue_id),
        detected_at=datetime(2024, 6, 30),
    )


def test_summarize_issues_orders_by_count_then_table() -> None:
    """Larger groups come first and ties are ordered by table and column."""
    issues = [
        _issue(1, "erp_orders", "country_code", "country_code is NULL or empty"),
        _issue(2, "crm_customer", "email", "email is NULL or empty"),
        _issue(3, "crm_customer", "email", "email is NULL or empty"),
        _issue(4, "crm_customer", None, "row missing"),
    ]

    rows = summarize_issues(issues)

    assert rows == [
        IssueSummaryRow("crm_customer", "email", "null_check", "email is NULL or empty", 2),
        IssueSummaryRow("crm_customer", None, "null_check", "row missing", 1),
        IssueSummaryRow(
            "erp_orders", "country_code", "null_check", "country_code is NULL or empty", 1
        ),
    ]


def test_summarize_issues_empty_input() -> None:
    """No issues yield no summary rows."""
    assert summarize_issues([]) == []
