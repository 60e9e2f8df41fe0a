"""Unit tests for run-spec parsing."""

from __future__ import annotations

import pytest

from core.errors import SilverlineRunSpecError
from core.run_spec import load_run_spec, parse_run_spec
from tests.fixture_paths import fixture_path


def test_load_run_spec_valid_pipeline_parses_steps() -> None:
    """Valid run-spec should parse expected command order."""
    spec = load_run_spec(str(fixture_path("run_spec/transform_and_scan.yaml")))

    assert tuple(step.command for step in spec.steps) == (
        "transform",
        "scan",
        "issues",
        "rejections",
    )


def test_load_run_spec_reads_yaml_date_as_of() -> None:
    """A YAML date in defaults should become ISO text."""
    spec = load_run_spec(str(fixture_path("run_spec/transform_and_scan.yaml")))

    assert spec.defaults.as_of == "2024-06-30"


def test_load_run_spec_keeps_step_arguments() -> None:
    """Step options should be preserved for execution."""
    spec = load_run_spec(str(fixture_path("run_spec/transform_and_scan.yaml")))

    assert [dict(step.args) for step in spec.steps[2:]] == [{"summary": True}, {"entity": "order"}]


def test_load_run_spec_invalid_command_raises_error() -> None:
    """Unsupported command name should raise run-spec error."""
    with pytest.raises(SilverlineRunSpecError):
        load_run_spec(str(fixture_path("run_spec/invalid_command.yaml")))


def test_load_run_spec_invalid_defaults_key_raises_error() -> None:
    """Unknown defaults field should be rejected."""
    with pytest.raises(SilverlineRunSpecError):
        load_run_spec(str(fixture_path("run_spec/invalid_defaults_key.yaml")))


def test_load_run_spec_invalid_step_argument_raises_error() -> None:
    """Options a command does not accept should be rejected."""
    with pytest.raises(SilverlineRunSpecError):
        load_run_spec(str(fixture_path("run_spec/invalid_step_argument.yaml")))


def test_load_run_spec_missing_file_raises_error(tmp_path) -> None:
    """A missing file should raise run-spec error."""
    with pytest.raises(SilverlineRunSpecError):
        load_run_spec(str(tmp_path / "missing.yaml"))


def test_parse_run_spec_rejects_unsupported_version() -> None:
    """Only version 1 run-specs are accepted."""
    with pytest.raises(SilverlineRunSpecError):
        parse_run_spec({"version": 2, "steps": ["transform"]})


def test_parse_run_spec_rejects_empty_steps() -> None:
    """A run-spec must contain at least one step."""
    with pytest.raises(SilverlineRunSpecError):
        parse_run_spec({"version": 1, "steps": []})
