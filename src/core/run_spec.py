"""Typed run-spec parsing for declarative warehouse runs.

This module loads and validates YAML run-spec files. A run-spec lists the
transform, scan, and reporting steps to execute in order, so scheduled
jobs and the CLI share one pipeline description.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Literal, Mapping, Sequence, cast

from core.errors import SilverlineDependencyError, SilverlineRunSpecError

RunSpecCommand = Literal["transform", "scan", "issues", "tables", "rejections"]
SUPPORTED_RUN_SPEC_COMMANDS: tuple[RunSpecCommand, ...] = (
    "transform",
    "scan",
    "issues",
    "tables",
    "rejections",
)
STEP_ARGUMENTS: Mapping[RunSpecCommand, frozenset[str]] = {
    "transform": frozenset(),
    "scan": frozenset(),
    "issues": frozenset({"summary"}),
    "tables": frozenset(),
    "rejections": frozenset({"entity"}),
}
DEFAULT_FIELDS = frozenset({"data_root", "source_uri", "as_of"})


@dataclass(frozen=True)
class RunSpecDefaults:
    """Configuration overrides applied before any step runs."""

    data_root: str | None = None
    source_uri: str | None = None
    as_of: str | None = None


@dataclass(frozen=True)
class RunSpecStep:
    """One runnable step from a run-spec file."""

    command: RunSpecCommand
    args: Mapping[str, object]


@dataclass(frozen=True)
class RunSpec:
    """Validated run-spec root object."""

    version: int
    defaults: RunSpecDefaults
    steps: tuple[RunSpecStep, ...]


def load_run_spec(spec_path: str) -> RunSpec:
    """Load and validate a YAML run-spec from disk.

    Args:
        spec_path: File path to YAML run-spec.

    Returns:
        Fully validated run-spec object.

    Raises:
        SilverlineDependencyError: If PyYAML is unavailable.
        SilverlineRunSpecError: If the file is invalid or schema checks fail.
    """
    payload = _load_yaml_payload(spec_path)
    return parse_run_spec(payload)


def parse_run_spec(payload: object) -> RunSpec:
    """Validate an already-decoded run-spec payload."""
    root_mapping = _expect_mapping(payload, "run spec root")
    _reject_unknown_keys(root_mapping, {"version", "defaults", "steps"}, "run spec root")
    return RunSpec(
        version=_parse_version(root_mapping),
        defaults=_parse_defaults(root_mapping),
        steps=_parse_steps(root_mapping),
    )


def _load_yaml_payload(spec_path: str) -> object:
    try:
        import yaml  # type: ignore[import-untyped]
    except ImportError as error:  # pragma: no cover - dependency failure
        raise SilverlineDependencyError(
            "YAML run-spec support requires PyYAML. Install with 'pip install pyyaml'."
        ) from error
    spec_file = Path(spec_path).expanduser().resolve()
    if not spec_file.is_file():
        raise SilverlineRunSpecError(
            f"Run spec file does not exist at {spec_file}. Provide a valid YAML file path."
        )
    try:
        payload = cast(object, yaml.safe_load(spec_file.read_text(encoding="utf-8")))
    except OSError as error:
        raise SilverlineRunSpecError(
            f"Failed to read run spec at {spec_file}: {error}. Check file permissions and retry."
        ) from error
    except yaml.YAMLError as error:
        raise SilverlineRunSpecError(
            f"Failed to parse YAML run spec at {spec_file}: {error}. Fix YAML syntax and retry."
        ) from error
    if payload is None:
        raise SilverlineRunSpecError(
            f"Run spec at {spec_file} is empty. Define 'version' and 'steps'."
        )
    return payload


def _expect_mapping(value: object, context: str) -> Mapping[str, object]:
    if not isinstance(value, Mapping):
        raise SilverlineRunSpecError(
            f"Invalid {context}: expected object mapping, got {type(value).__name__}."
        )
    for key in value:
        if not isinstance(key, str):
            raise SilverlineRunSpecError(
                f"Invalid {context}: expected string keys, got {type(key).__name__}."
            )
    return cast(Mapping[str, object], value)


def _expect_sequence(value: object, context: str) -> Sequence[object]:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return value
    raise SilverlineRunSpecError(
        f"Invalid {context}: expected list, got {type(value).__name__}."
    )


def _parse_version(root_mapping: Mapping[str, object]) -> int:
    raw_version = root_mapping.get("version")
    if isinstance(raw_version, bool) or not isinstance(raw_version, int):
        raise SilverlineRunSpecError("Run spec field 'version' must be an integer. Set version: 1.")
    if raw_version != 1:
        raise SilverlineRunSpecError(f"Unsupported run spec version {raw_version}. Use version: 1.")
    return raw_version


def _parse_defaults(root_mapping: Mapping[str, object]) -> RunSpecDefaults:
    raw_defaults = root_mapping.get("defaults")
    if raw_defaults is None:
        return RunSpecDefaults()
    defaults_mapping = _expect_mapping(raw_defaults, "run spec defaults")
    _reject_unknown_keys(defaults_mapping, DEFAULT_FIELDS, "run spec defaults")
    return RunSpecDefaults(
        data_root=_optional_text(defaults_mapping, "data_root"),
        source_uri=_optional_text(defaults_mapping, "source_uri"),
        as_of=_optional_timestamp_text(defaults_mapping, "as_of"),
    )


def _parse_steps(root_mapping: Mapping[str, object]) -> tuple[RunSpecStep, ...]:
    raw_steps = root_mapping.get("steps")
    if raw_steps is None:
        raise SilverlineRunSpecError(
            "Run spec missing required field 'steps'. Add a non-empty list of commands."
        )
    step_rows = _expect_sequence(raw_steps, "run spec steps")
    if not step_rows:
        raise SilverlineRunSpecError("Run spec field 'steps' must include at least one step.")
    return tuple(_parse_step(step_value, index) for index, step_value in enumerate(step_rows))


def _parse_step(step_value: object, step_index: int) -> RunSpecStep:
    context = f"run spec step #{step_index + 1}"
    if isinstance(step_value, str):
        step_mapping: Mapping[str, object] = {"command": step_value}
    else:
        step_mapping = _expect_mapping(step_value, context)
    raw_command = step_mapping.get("command")
    if not isinstance(raw_command, str):
        raise SilverlineRunSpecError(f"Invalid {context}: field 'command' must be a string.")
    command = _parse_command(raw_command, context)
    args = {key: value for key, value in step_mapping.items() if key != "command"}
    _reject_unknown_keys(args, STEP_ARGUMENTS[command], f"{context} ({command})")
    return RunSpecStep(command=command, args=args)


def _parse_command(raw_command: str, context: str) -> RunSpecCommand:
    if raw_command in SUPPORTED_RUN_SPEC_COMMANDS:
        return cast(RunSpecCommand, raw_command)
    supported_rows = ", ".join(SUPPORTED_RUN_SPEC_COMMANDS)
    raise SilverlineRunSpecError(
        f"Unsupported command '{raw_command}' in {context}. Use one of: {supported_rows}."
    )


def _optional_text(mapping: Mapping[str, object], field_name: str) -> str | None:
    raw_value = mapping.get(field_name)
    if raw_value is None:
        return None
    if isinstance(raw_value, str):
        return raw_value.strip() or None
    raise SilverlineRunSpecError(f"Run spec field '{field_name}' must be a string when provided.")


def _optional_timestamp_text(mapping: Mapping[str, object], field_name: str) -> str | None:
    """Read a timestamp field; YAML may already decode it to a date or datetime."""
    raw_value = mapping.get(field_name)
    if isinstance(raw_value, (date, datetime)):
        return raw_value.isoformat()
    return _optional_text(mapping, field_name)


def _reject_unknown_keys(
    mapping: Mapping[str, object],
    allowed_keys: frozenset[str] | set[str],
    context: str,
) -> None:
    unknown_keys = sorted(set(mapping) - set(allowed_keys))
    if unknown_keys:
        raise SilverlineRunSpecError(
            f"Invalid {context}: unknown fields {', '.join(unknown_keys)}."
        )
