"""Shared run-spec execution engine for CLI and SDK workflows.

This module maps validated run-spec steps to client operations and owns
the text rendering of their results, so the CLI and scheduled run-specs
print identical lines.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence

from core.errors import SilverlineRunSpecError
from core.run_spec import RunSpec, RunSpecStep, load_run_spec
from core.types import (
    Issue,
    IssueSummaryRow,
    Rejection,
    ScanReport,
    TransformReport,
)


class RunSpecClient(Protocol):
    """Client API contract required by run-spec execution."""

    def with_data_root(self, data_root: str) -> Any: ...

    def with_overrides(self, source_uri: str | None = None, as_of: str | None = None) -> Any: ...

    def run_transform(self) -> TransformReport: ...

    def run_dq_scan(self) -> ScanReport: ...

    def load_issues(self) -> list[Issue]: ...

    def summarize_issues(self) -> list[IssueSummaryRow]: ...

    def load_rejections(self, entity: str | None = None) -> list[Rejection]: ...

    def table_counts(self) -> dict[str, int]: ...


def execute_run_spec_file(client: RunSpecClient, spec_file: str) -> tuple[str, ...]:
    """Load and execute a run-spec file, returning printable output lines."""
    spec = load_run_spec(spec_file)
    return execute_run_spec(client, spec)


def execute_run_spec(client: RunSpecClient, spec: RunSpec) -> tuple[str, ...]:
    """Execute a parsed run-spec object and return output lines."""
    defaults = spec.defaults
    execution_client = client.with_data_root(defaults.data_root) if defaults.data_root else client
    if defaults.source_uri or defaults.as_of:
        execution_client = execution_client.with_overrides(
            source_uri=defaults.source_uri,
            as_of=defaults.as_of,
        )
    output_lines: list[str] = []
    for step in spec.steps:
        output_lines.extend(_execute_step(execution_client, step))
    return tuple(output_lines)


def describe_run_spec(spec: RunSpec) -> tuple[str, ...]:
    """Render the defaults and planned steps of a run-spec without executing it.

    Args:
        spec: Parsed run-spec.

    Returns:
        One line per set default followed by one line per step.
    """
    defaults = spec.defaults
    default_lines = tuple(
        f"default.{name}={value}"
        for name, value in (
            ("data_root", defaults.data_root),
            ("source_uri", defaults.source_uri),
            ("as_of", defaults.as_of),
        )
        if value is not None
    )
    step_lines = tuple(
        "\t".join(
            (
                f"step={index}",
                f"command={step.command}",
                *(f"{key}={_render_option(step.args[key])}" for key in sorted(step.args)),
            )
        )
        for index, step in enumerate(spec.steps, start=1)
    )
    return (*default_lines, *step_lines)


def format_transform_report(report: TransformReport) -> tuple[str, ...]:
    """Render a transform report as one line per stage plus a version line."""
    stage_lines = tuple(
        f"{stage.table}\traw={stage.raw_count}\tcandidates={stage.candidate_count}"
        f"\tdeduplicated={stage.deduplicated_count}\tadmitted={stage.admitted_count}"
        f"\trejected={len(stage.rejections)}"
        for stage in report.stages
    )
    return (*stage_lines, f"version_id={report.version_id}")


def format_scan_report(report: ScanReport) -> tuple[str, ...]:
    """Render a scan report."""
    return (
        f"version_id={report.version_id}",
        f"silver_version={report.silver_version}",
        f"check_count={report.check_count}",
        f"issue_count={report.issue_count}",
    )


def format_issues(issues: Sequence[Issue]) -> tuple[str, ...]:
    """Render issues as tab-separated rows; nulls print as ``-``."""
    return tuple(
        "\t".join(
            (
                str(issue.issue_id),
                issue.table,
                issue.column or "-",
                issue.issue_type,
                issue.message,
                issue.value if issue.value is not None else "-",
                issue.primary_key if issue.primary_key is not None else "-",
            )
        )
        for issue in issues
    )


def format_issue_summary(rows: Sequence[IssueSummaryRow]) -> tuple[str, ...]:
    """Render grouped issue counts."""
    return tuple(
        f"{row.count}\t{row.table}\t{row.column or '-'}\t{row.issue_type}\t{row.message}"
        for row in rows
    )


def format_table_counts(counts: Mapping[str, int]) -> tuple[str, ...]:
    """Render table row counts sorted by table name."""
    return tuple(f"{table}\t{counts[table]}" for table in sorted(counts))


def format_rejections(rejections: Sequence[Rejection]) -> tuple[str, ...]:
    """Render exclusion audit rows."""
    return tuple(
        f"{rejection.entity}\t{rejection.primary_key or '-'}\t{rejection.stage}\t{rejection.reason}"
        for rejection in rejections
    )


def _execute_step(client: RunSpecClient, step: RunSpecStep) -> tuple[str, ...]:
    if step.command == "transform":
        return format_transform_report(client.run_transform())
    if step.command == "scan":
        return format_scan_report(client.run_dq_scan())
    if step.command == "issues":
        if _step_flag(step, "summary"):
            return format_issue_summary(client.summarize_issues())
        return format_issues(client.load_issues())
    if step.command == "tables":
        return format_table_counts(client.table_counts())
    if step.command == "rejections":
        return format_rejections(client.load_rejections(_step_text(step, "entity")))
    raise SilverlineRunSpecError(f"Unsupported run-spec command '{step.command}'.")


def _step_flag(step: RunSpecStep, field_name: str) -> bool:
    value = step.args.get(field_name)
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    raise SilverlineRunSpecError(
        f"Run-spec field '{field_name}' of step '{step.command}' must be true/false."
    )


def _step_text(step: RunSpecStep, field_name: str) -> str | None:
    value = step.args.get(field_name)
    if value is None:
        return None
    if isinstance(value, str) and value.strip():
        return value.strip()
    raise SilverlineRunSpecError(
        f"Run-spec field '{field_name}' of step '{step.command}' must be a non-empty string."
    )


def _render_option(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
