"""Runtime configuration model for Silverline.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import os
from pathlib import Path

from core.constants import DEFAULT_DATA_ROOT, DEFAULT_MAX_WORKERS, DEFAULT_SOURCE_URI
from core.errors import SilverlineConfigError

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


@dataclass(frozen=True)
class SilverlineConfig:
    """Validated runtime configuration.

    Attributes:
        data_root: Local root directory for versioned warehouse layers.
        source_uri: Root of the raw extracts, a local directory or ``s3://`` prefix.
        as_of: Naive UTC timestamp that stands in for "now" during a run.
        s3_region: Optional default AWS region for S3 operations.
        s3_profile: Optional AWS profile for boto3 session initialization.
        max_workers: Thread count for independent entity stages.
        write_lance: Whether table payloads are mirrored into Lance datasets.
    """

    data_root: Path
    source_uri: str
    as_of: datetime
    s3_region: str | None
    s3_profile: str | None
    max_workers: int
    write_lance: bool

    @classmethod
    def from_env(cls) -> "SilverlineConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            SilverlineConfigError: If environment values are invalid.
        """
        data_root_value = os.getenv("SILVERLINE_DATA_ROOT", str(DEFAULT_DATA_ROOT))
        return cls(
            data_root=Path(data_root_value).expanduser().resolve(),
            source_uri=os.getenv("SILVERLINE_SOURCE_URI", DEFAULT_SOURCE_URI),
            as_of=parse_as_of(os.getenv("SILVERLINE_AS_OF")),
            s3_region=os.getenv("SILVERLINE_S3_REGION"),
            s3_profile=os.getenv("SILVERLINE_S3_PROFILE"),
            max_workers=_parse_max_workers(
                os.getenv("SILVERLINE_MAX_WORKERS", str(DEFAULT_MAX_WORKERS))
            ),
            write_lance=_parse_bool("SILVERLINE_WRITE_LANCE", os.getenv("SILVERLINE_WRITE_LANCE")),
        )


def parse_as_of(raw_value: str | None) -> datetime:
    """Parse the run as-of timestamp.

    Args:
        raw_value: ISO-8601 date or datetime, or ``None`` for the current time.

    Returns:
        Naive UTC datetime truncated to whole seconds.

    Raises:
        SilverlineConfigError: If the value is not ISO-8601.
    """
    if raw_value is None or not raw_value.strip():
        return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)
    try:
        parsed = datetime.fromisoformat(raw_value.strip())
    except ValueError as error:
        raise SilverlineConfigError(
            "Invalid SILVERLINE_AS_OF value: "
            f"expected ISO-8601 date or datetime, got '{raw_value}'. "
            "Set SILVERLINE_AS_OF like 2024-06-30T00:00:00."
        ) from error
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed.replace(microsecond=0)


def _parse_max_workers(raw_value: str) -> int:
    """Parse the worker count environment value.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Positive worker count.

    Raises:
        SilverlineConfigError: If value is not a positive integer.
    """
    try:
        workers = int(raw_value)
    except ValueError as error:
        raise SilverlineConfigError(
            "Invalid SILVERLINE_MAX_WORKERS value: "
            f"expected integer, got '{raw_value}'. "
            "Set SILVERLINE_MAX_WORKERS to a positive number."
        ) from error
    if workers < 1:
        raise SilverlineConfigError(
            f"Invalid SILVERLINE_MAX_WORKERS value {workers}: must be at least 1."
        )
    return workers


def _parse_bool(variable_name: str, raw_value: str | None) -> bool:
    if raw_value is None:
        return True
    normalized = raw_value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise SilverlineConfigError(
        f"Invalid {variable_name} value '{raw_value}'. Use true or false."
    )
