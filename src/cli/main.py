"""Silverline CLI entry points.
This module exposes the transform, scan, and reporting commands.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Sequence

from cli.run_spec_command import add_run_spec_command, run_run_spec_command
from core.config import SilverlineConfig, parse_as_of
from core.errors import SilverlineError
from core.run_spec_execution import (
    format_issue_summary,
    format_issues,
    format_rejections,
    format_scan_report,
    format_table_counts,
    format_transform_report,
)
from store.warehouse_sdk import SilverlineClient


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="silverline",
        description="Bronze-to-silver warehouse transforms and data-quality scans",
    )
    parser.add_argument("--data-root", help="Override SILVERLINE_DATA_ROOT for this command")
    parser.add_argument("--source-uri", help="Override SILVERLINE_SOURCE_URI for this command")
    parser.add_argument("--as-of", help="Override SILVERLINE_AS_OF (ISO-8601) for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("transform", help="Rebuild validated tables from raw extracts")
    subparsers.add_parser("scan", help="Rebuild the issue table from validated tables")
    _add_issues_command(subparsers)
    subparsers.add_parser("tables", help="Show row counts of the latest validated version")
    _add_rejections_command(subparsers)
    add_run_spec_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Silverline CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        client = _build_client(args)
        return _dispatch(client, args)
    except SilverlineError as error:
        code = getattr(error, "code", type(error).__name__)
        print(f"error={code}: {error}", file=sys.stderr)
        return 1


def _dispatch(client: SilverlineClient, args: argparse.Namespace) -> int:
    if args.command == "transform":
        return _print_lines(format_transform_report(client.run_transform()))
    if args.command == "scan":
        return _print_lines(format_scan_report(client.run_dq_scan()))
    if args.command == "issues":
        return _run_issues_command(client, args)
    if args.command == "tables":
        return _print_lines(format_table_counts(client.table_counts()))
    if args.command == "rejections":
        return _print_lines(format_rejections(client.load_rejections(args.entity)))
    if args.command == "run-spec":
        return run_run_spec_command(client, args)
    raise ValueError(f"Unsupported command: {args.command}")


def _build_client(args: argparse.Namespace) -> SilverlineClient:
    """Build SDK client with optional global overrides.

    Args:
        args: Parsed CLI args.

    Returns:
        Configured SDK client.
    """
    config = SilverlineConfig.from_env()
    if args.data_root:
        config = replace(config, data_root=Path(args.data_root).expanduser().resolve())
    if args.source_uri:
        config = replace(config, source_uri=args.source_uri)
    if args.as_of:
        config = replace(config, as_of=parse_as_of(args.as_of))
    return SilverlineClient(config)


def _run_issues_command(client: SilverlineClient, args: argparse.Namespace) -> int:
    """Handle issues command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    if args.summary:
        return _print_lines(format_issue_summary(client.summarize_issues()))
    return _print_lines(format_issues(client.load_issues()))


def _print_lines(lines: Sequence[str]) -> int:
    for line in lines:
        print(line)
    return 0


def _add_issues_command(subparsers: Any) -> None:
    """Register issues subcommand."""
    parser = subparsers.add_parser("issues", help="List issues from the latest scan")
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Group issues by table, column, type and message with counts",
    )


def _add_rejections_command(subparsers: Any) -> None:
    """Register rejections subcommand."""
    parser = subparsers.add_parser(
        "rejections",
        help="List rows excluded by the latest transform",
    )
    parser.add_argument("--entity", help="Only show rows excluded from this entity")
