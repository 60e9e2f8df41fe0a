"""Run-spec CLI command wiring.

``run-spec <file>`` executes every step against the client. With ``--check``
the file is only validated and its plan printed, so schedules can be linted
before they reach a warehouse.
"""

from __future__ import annotations

import argparse
from typing import Any

from core.run_spec import load_run_spec
from core.run_spec_execution import describe_run_spec
from store.warehouse_sdk import SilverlineClient


def add_run_spec_command(subparsers: Any) -> None:
    """Register run-spec subcommand."""
    parser = subparsers.add_parser(
        "run-spec",
        help="Run a declarative YAML pipeline spec",
    )
    parser.add_argument("spec_file", help="Path to YAML run-spec file")
    parser.add_argument(
        "--check",
        action="store_true",
        help="Validate the file and print planned steps without running them",
    )


def run_run_spec_command(client: SilverlineClient, args: argparse.Namespace) -> int:
    """Handle run-spec command invocation.

    Args:
        client: SDK client used when steps are executed.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    if args.check:
        lines = describe_run_spec(load_run_spec(args.spec_file))
    else:
        lines = client.run_spec(args.spec_file)
    for line in lines:
        print(line)
    return 0
