"""Typed table persistence helpers.

This module writes warehouse tables as sorted-key JSONL files and, when
enabled, mirrors them into Apache Lance datasets through pyarrow. JSONL
remains the read path so values round-trip with their exact types.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Mapping

from core.constants import LANCE_DIR_SUFFIX, TABLE_FILE_SUFFIX
from core.errors import SilverlineDependencyError, SilverlineStoreError
from core.types import ColumnType, EntityRecord

_DECIMAL_PRECISION = 38
_DECIMAL_SCALE = 4


@dataclass(frozen=True)
class TablePayload:
    """One table to persist inside a layer version.

    Attributes:
        name: Table name, used as the file stem.
        columns: Column schema in output order.
        records: Typed records in persisted order.
    """

    name: str
    columns: Mapping[str, ColumnType]
    records: tuple[EntityRecord, ...]


def write_table(version_dir: Path, table: TablePayload, write_lance: bool) -> bool:
    """Persist a table and optionally its Lance mirror.

    Args:
        version_dir: Directory of the version being built.
        table: Table payload.
        write_lance: Whether to also write a Lance dataset.

    Returns:
        ``True`` when a Lance dataset was written.

    Raises:
        SilverlineStoreError: If persistence fails.
        SilverlineDependencyError: If Lance output is requested but
            lance or pyarrow is not installed.
    """
    table_path = version_dir / f"{table.name}{TABLE_FILE_SUFFIX}"
    try:
        table_path.write_text(encode_table_text(table), encoding="utf-8")
    except OSError as error:
        raise SilverlineStoreError(
            f"Failed to persist table payload at {table_path}: {error}. "
            "Check write permissions and available disk space.",
            code="E_STORE_WRITE",
        ) from error
    if not write_lance:
        return False
    _write_lance_dataset(version_dir, table)
    return True


def encode_table_text(table: TablePayload) -> str:
    """Render a table as JSONL text with one sorted-key object per line."""
    lines = [
        json.dumps(encode_record(record), sort_keys=True)
        for record in table.records
    ]
    return "".join(f"{line}\n" for line in lines)


def read_table(
    version_dir: Path,
    table_name: str,
    columns: Mapping[str, ColumnType],
) -> list[EntityRecord]:
    """Load a table from its JSONL file.

    Args:
        version_dir: Published version directory.
        table_name: Table name.
        columns: Column schema recorded in the version manifest.

    Returns:
        Typed records in persisted order.

    Raises:
        SilverlineStoreError: If the file is missing or invalid.
    """
    table_path = version_dir / f"{table_name}{TABLE_FILE_SUFFIX}"
    if not table_path.exists():
        raise SilverlineStoreError(
            f"Failed to load table '{table_name}' at {version_dir}: missing {table_path.name}.",
            code="E_STORE_READ",
        )
    records: list[EntityRecord] = []
    for line_number, line in enumerate(table_path.read_text(encoding="utf-8").splitlines(), 1):
        if not line.strip():
            continue
        payload = _parse_json_line(table_path, line, line_number)
        records.append(decode_record(payload, columns))
    return records


def encode_record(record: EntityRecord) -> dict[str, Any]:
    """Convert a typed record to a JSON-safe dictionary."""
    payload: dict[str, Any] = {}
    for column, value in record.items():
        if value is None:
            payload[column] = None
        elif isinstance(value, Decimal):
            payload[column] = format(value, "f")
        elif isinstance(value, (datetime, date)):
            payload[column] = value.isoformat()
        else:
            payload[column] = value
    return payload


def decode_record(payload: Mapping[str, Any], columns: Mapping[str, ColumnType]) -> EntityRecord:
    """Convert a JSON payload back into typed values.

    Columns absent from the schema are passed through unchanged.
    """
    record: EntityRecord = {}
    for column, value in payload.items():
        column_type = columns.get(column)
        if value is None or column_type is None:
            record[column] = value
        elif column_type == "decimal":
            record[column] = Decimal(str(value))
        elif column_type == "datetime":
            record[column] = datetime.fromisoformat(str(value))
        elif column_type == "date":
            record[column] = date.fromisoformat(str(value))
        elif column_type == "int":
            record[column] = int(value)
        elif column_type == "bool":
            record[column] = bool(value)
        else:
            record[column] = str(value)
    return record


def arrow_schema(columns: Mapping[str, ColumnType]) -> Any:
    """Build the pyarrow schema matching a column schema."""
    import pyarrow as pa

    type_map = {
        "str": pa.string(),
        "int": pa.int64(),
        "decimal": pa.decimal128(_DECIMAL_PRECISION, _DECIMAL_SCALE),
        "bool": pa.bool_(),
        "date": pa.date32(),
        "datetime": pa.timestamp("us"),
    }
    return pa.schema([(column, type_map[column_type]) for column, column_type in columns.items()])


def _write_lance_dataset(version_dir: Path, table: TablePayload) -> None:
    """Write a table to Apache Lance.

    Raises:
        SilverlineDependencyError: If lance or pyarrow is missing.
        SilverlineStoreError: If the Lance write fails.
    """
    try:
        import lance
        import pyarrow as pa
    except ImportError as error:
        raise SilverlineDependencyError(
            "Lance table output requires pylance and pyarrow. "
            "Install them or set SILVERLINE_WRITE_LANCE=false."
        ) from error
    schema = arrow_schema(table.columns)
    lance_uri = str(version_dir / f"{table.name}{LANCE_DIR_SUFFIX}")
    try:
        arrow_table = pa.Table.from_pylist(
            [{column: record.get(column) for column in table.columns} for record in table.records],
            schema=schema,
        )
        lance.write_dataset(arrow_table, lance_uri, mode="overwrite")
    except Exception as error:
        raise SilverlineStoreError(
            f"Failed to write Lance dataset at {lance_uri}: {error}. "
            "Validate lance/pyarrow compatibility and retry.",
            code="E_STORE_WRITE",
        ) from error


def _parse_json_line(table_path: Path, line: str, line_number: int) -> dict[str, Any]:
    """Parse one table JSONL line.

    Raises:
        SilverlineStoreError: If JSON is invalid.
    """
    try:
        payload = json.loads(line)
    except json.JSONDecodeError as error:
        raise SilverlineStoreError(
            f"Failed to parse table payload at {table_path}:{line_number}: "
            f"{error.msg}. Re-run the producing stage to rebuild the table.",
            code="E_STORE_READ",
        ) from error
    if not isinstance(payload, dict):
        raise SilverlineStoreError(
            f"Failed to parse table payload at {table_path}:{line_number}: "
            "expected a JSON object per line. Re-run the producing stage.",
            code="E_STORE_READ",
        )
    return payload
