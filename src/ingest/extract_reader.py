"""Raw extract readers for the transform pipeline.

This module loads per-entity CSV extracts from a local directory or an
S3 prefix. Empty fields are read as null, mirroring bulk-load semantics.
"""

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Any, Sequence

from core.config import SilverlineConfig
from core.errors import SilverlineDependencyError, SilverlineExtractError
from core.logging_config import get_logger
from core.s3_uri import parse_s3_uri

_LOGGER = get_logger(__name__)

RawRow = dict[str, str | None]


class ExtractReader:
    """Reads raw extracts below one source root.

    One reader is shared by every stage of a run so the S3 client is
    created at most once.
    """

    def __init__(self, config: SilverlineConfig) -> None:
        self._config = config
        self._source_uri = config.source_uri
        self._s3_client: Any = None

    def read_extract(
        self,
        relative_path: str,
        columns: Sequence[str],
        entity: str,
    ) -> list[RawRow]:
        """Read one entity extract.

        Args:
            relative_path: Extract path below the source root.
            columns: Raw columns the entity requires.
            entity: Entity name used for error context.

        Returns:
            Rows keyed by raw column name, in file order.

        Raises:
            SilverlineExtractError: If the file is missing, unreadable, or
                lacks required columns.
        """
        if self._source_uri.startswith("s3://"):
            text, location = self._read_s3_text(relative_path, entity)
        else:
            source_root = Path(self._source_uri).expanduser()
            text, location = _read_local_text(source_root, relative_path, entity)
        rows = parse_extract_text(text, columns, location, entity)
        _LOGGER.info("extract_loaded", entity=entity, source=location, row_count=len(rows))
        return rows

    def _read_s3_text(self, relative_path: str, entity: str) -> tuple[str, str]:
        location = parse_s3_uri(self._source_uri)
        object_key = location.join(relative_path)
        source = f"s3://{location.bucket}/{object_key}"
        if self._s3_client is None:
            self._s3_client = _create_s3_client(self._config)
        try:
            response = self._s3_client.get_object(Bucket=location.bucket, Key=object_key)
            body = response["Body"].read().decode("utf-8-sig")
        except UnicodeDecodeError as error:
            raise SilverlineExtractError(
                f"Failed to decode extract {source}: {error}. Save the extract as UTF-8.",
                code="E_EXTRACT_READ",
                entity=entity,
            ) from error
        except Exception as error:
            raise SilverlineExtractError(
                f"Failed to read extract {source}: {error}. "
                "Check the object exists and AWS credentials allow reading it.",
                code="E_EXTRACT_MISSING",
                entity=entity,
            ) from error
        return body, source


def parse_extract_text(
    text: str,
    columns: Sequence[str],
    location: str,
    entity: str,
) -> list[RawRow]:
    """Parse CSV text with a header row into raw rows.

    Args:
        text: Full CSV payload.
        columns: Required raw columns; extra columns are ignored.
        location: Source location for error messages.
        entity: Entity name for error context.

    Returns:
        Rows restricted to the required columns; empty fields become ``None``.

    Raises:
        SilverlineExtractError: If the header is missing required columns
            or the CSV is malformed.
    """
    reader = csv.DictReader(io.StringIO(text))
    header = [name.strip() for name in reader.fieldnames or ()]
    missing_columns = [column for column in columns if column not in header]
    if missing_columns:
        raise SilverlineExtractError(
            f"Extract {location} is missing columns: {', '.join(missing_columns)}. "
            "Regenerate the extract with the documented raw schema.",
            code="E_EXTRACT_SCHEMA",
            entity=entity,
        )
    reader.fieldnames = header
    rows: list[RawRow] = []
    try:
        for raw_row in reader:
            rows.append({column: _null_if_empty(raw_row.get(column)) for column in columns})
    except csv.Error as error:
        raise SilverlineExtractError(
            f"Failed to parse extract {location} near line {reader.line_num}: {error}. "
            "Fix the CSV quoting and retry.",
            code="E_EXTRACT_READ",
            entity=entity,
        ) from error
    return rows


def _read_local_text(source_root: Path, relative_path: str, entity: str) -> tuple[str, str]:
    """Read one local extract file.

    Raises:
        SilverlineExtractError: If the file is missing or unreadable.
    """
    file_path = source_root / relative_path
    if not file_path.is_file():
        raise SilverlineExtractError(
            f"Extract for '{entity}' not found at {file_path}. "
            "Provide the raw extract or point SILVERLINE_SOURCE_URI at the extract root.",
            code="E_EXTRACT_MISSING",
            entity=entity,
        )
    try:
        return file_path.read_text(encoding="utf-8-sig"), str(file_path)
    except (OSError, UnicodeDecodeError) as error:
        raise SilverlineExtractError(
            f"Failed to read extract {file_path}: {error}. "
            "Check file permissions and encoding.",
            code="E_EXTRACT_READ",
            entity=entity,
        ) from error


def _null_if_empty(value: str | None) -> str | None:
    if value is None or value == "":
        return None
    return value


def _create_s3_client(config: SilverlineConfig) -> Any:
    """Create a boto3 S3 client.

    Args:
        config: Runtime config containing optional profile/region.

    Returns:
        Boto3 S3 client.

    Raises:
        SilverlineDependencyError: If boto3 is missing.
    """
    try:
        import boto3
    except ImportError as error:
        raise SilverlineDependencyError(
            "S3 extracts require boto3, but it is not installed. "
            "Install boto3 to read from s3:// sources."
        ) from error
    session = boto3.session.Session(**build_boto3_session_kwargs(config))
    return session.client("s3")


def build_boto3_session_kwargs(config: SilverlineConfig) -> dict[str, str]:
    """Build boto3 Session kwargs from config.

    Args:
        config: Runtime config.

    Returns:
        Session keyword arguments.
    """
    kwargs: dict[str, str] = {}
    if config.s3_profile:
        kwargs["profile_name"] = config.s3_profile
    if config.s3_region:
        kwargs["region_name"] = config.s3_region
    return kwargs
