"""Catalog and manifest persistence helpers.

This module isolates JSON catalog IO and version id generation so the
warehouse store stays focused on the publish flow.
"""

from __future__ import annotations

import hashlib
import json
import os
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Sequence

from core.constants import HASH_ALGORITHM, MANIFEST_FILE_NAME
from core.errors import SilverlineStoreError
from core.types import LayerManifest
from store.table_codec import TablePayload, encode_table_text


def build_version_id(layer: str, tables: Sequence[TablePayload], created_at: datetime) -> str:
    """Build a version id from layer, creation time, and table content.

    Args:
        layer: Layer name.
        tables: Tables in the version.
        created_at: UTC creation timestamp.

    Returns:
        Version id string.
    """
    timestamp = created_at.strftime("%Y%m%dT%H%M%S%fZ")
    hasher = hashlib.new(HASH_ALGORITHM)
    for table in sorted(tables, key=lambda item: item.name):
        hasher.update(table.name.encode("utf-8"))
        hasher.update(encode_table_text(table).encode("utf-8"))
    return f"{layer}-{timestamp}-{hasher.hexdigest()[:10]}"


def utc_now() -> datetime:
    """Current UTC time as an aware datetime."""
    return datetime.now(timezone.utc)


def manifest_to_dict(manifest: LayerManifest) -> dict[str, Any]:
    """Serialize a manifest to a JSON-safe dictionary."""
    payload = asdict(manifest)
    payload["created_at"] = manifest.created_at.isoformat()
    payload["as_of"] = manifest.as_of.isoformat()
    payload["table_counts"] = dict(manifest.table_counts)
    return payload


def manifest_from_dict(payload: Mapping[str, Any]) -> LayerManifest:
    """Deserialize manifest payload from dictionary.

    Args:
        payload: Manifest dictionary.

    Returns:
        Typed layer manifest.
    """
    return LayerManifest(
        layer=payload["layer"],
        version_id=str(payload["version_id"]),
        created_at=datetime.fromisoformat(str(payload["created_at"])),
        as_of=datetime.fromisoformat(str(payload["as_of"])),
        parent_version=str(payload["parent_version"]) if payload["parent_version"] else None,
        table_counts={
            str(name): int(count) for name, count in dict(payload["table_counts"]).items()
        },
    )


def write_manifest_file(
    version_dir: Path,
    manifest: LayerManifest,
    table_columns: Mapping[str, Mapping[str, str]],
    lance_written: bool,
    details: Mapping[str, object],
) -> None:
    """Write the per-version manifest file.

    Args:
        version_dir: Version directory being built.
        manifest: Manifest payload.
        table_columns: Column schema per table, needed to decode tables.
        lance_written: Whether Lance datasets were created.
        details: Producer-specific statistics.
    """
    manifest_dict = manifest_to_dict(manifest)
    manifest_dict["tables"] = {name: dict(columns) for name, columns in table_columns.items()}
    manifest_dict["lance_written"] = lance_written
    manifest_dict["details"] = dict(details)
    manifest_path = version_dir / MANIFEST_FILE_NAME
    manifest_path.write_text(
        json.dumps(manifest_dict, indent=2, sort_keys=True) + "\n", encoding="utf-8"
    )


def read_manifest_file(version_dir: Path) -> dict[str, Any]:
    """Read a version manifest file.

    Raises:
        SilverlineStoreError: If the manifest is missing or invalid.
    """
    return _read_json_object(version_dir / MANIFEST_FILE_NAME, "version manifest")


def write_catalog(catalog_path: Path, manifest: LayerManifest) -> None:
    """Point the layer catalog at a new latest version.

    The catalog is written to a temporary file and swapped into place so
    readers never observe a partially written pointer.

    Args:
        catalog_path: Catalog JSON path.
        manifest: Manifest of the newly published version.
    """
    catalog = {
        "latest_version": manifest.version_id,
        "versions": [manifest_to_dict(manifest)],
    }
    temp_path = catalog_path.with_name(f"{catalog_path.name}.tmp")
    temp_path.write_text(json.dumps(catalog, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    os.replace(temp_path, catalog_path)


def read_catalog_file(catalog_path: Path) -> dict[str, Any]:
    """Read and validate a layer catalog payload.

    Args:
        catalog_path: Catalog JSON path.

    Returns:
        Parsed catalog object.

    Raises:
        SilverlineStoreError: If catalog is missing or invalid.
    """
    if not catalog_path.exists():
        raise SilverlineStoreError(
            f"Layer catalog not found at {catalog_path}. "
            "Run the producing step before reading its tables.",
            code="E_STORE_EMPTY",
        )
    return _read_json_object(catalog_path, "layer catalog")


def _read_json_object(path: Path, context: str) -> dict[str, Any]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as error:
        raise SilverlineStoreError(
            f"Missing {context} at {path}. Re-run the producing step.",
            code="E_STORE_READ",
        ) from error
    except json.JSONDecodeError as error:
        raise SilverlineStoreError(
            f"Failed to parse {context} at {path}: {error.msg}. Re-run the producing step.",
            code="E_STORE_READ",
        ) from error
    if not isinstance(payload, dict):
        raise SilverlineStoreError(
            f"Failed to parse {context} at {path}: expected JSON object at top level.",
            code="E_STORE_READ",
        )
    return payload
