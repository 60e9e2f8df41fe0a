"""Versioned warehouse layer store.

This module publishes each run's output as an immutable version directory
and swaps the layer catalog pointer atomically. A failed run never touches
the published version, and superseded versions are pruned after publish.
"""

from __future__ import annotations

import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Sequence, cast

from core.config import SilverlineConfig
from core.constants import CATALOG_FILE_NAME, PARTIAL_DIR_SUFFIX, VERSIONS_DIR_NAME
from core.errors import SilverlineError, SilverlineStoreError
from core.logging_config import get_logger
from core.types import ColumnType, EntityRecord, LayerManifest, LayerName
from store.catalog_io import (
    build_version_id,
    manifest_from_dict,
    read_catalog_file,
    read_manifest_file,
    utc_now,
    write_catalog,
    write_manifest_file,
)
from store.table_codec import TablePayload, read_table, write_table

_LOGGER = get_logger(__name__)


class WarehouseStore:
    """Layer store owning version directories and catalog pointers.

    Each layer (``silver``, ``dq``) lives under its own directory below
    the configured data root.
    """

    def __init__(self, config: SilverlineConfig) -> None:
        """Initialize the store from config.

        Args:
            config: Runtime configuration.
        """
        self._config = config
        self._data_root = config.data_root
        self._data_root.mkdir(parents=True, exist_ok=True)

    def publish(
        self,
        layer: LayerName,
        tables: Sequence[TablePayload],
        as_of: datetime,
        parent_version: str | None = None,
        details: Mapping[str, object] | None = None,
    ) -> LayerManifest:
        """Build a new layer version and make it the latest.

        Args:
            layer: Target layer.
            tables: Complete set of tables for the version.
            as_of: Run as-of timestamp.
            parent_version: Upstream version the tables were built from.
            details: Producer statistics stored in the manifest.

        Returns:
            Manifest of the published version.

        Raises:
            SilverlineStoreError: If the version cannot be written or published.
        """
        versions_root = self._versions_root(layer)
        created_at = utc_now()
        version_id = build_version_id(layer, tables, created_at)
        staging_dir = versions_root / f"{version_id}{PARTIAL_DIR_SUFFIX}"
        version_dir = versions_root / version_id
        manifest = LayerManifest(
            layer=layer,
            version_id=version_id,
            created_at=created_at,
            as_of=as_of,
            parent_version=parent_version,
            table_counts={table.name: len(table.records) for table in tables},
        )
        try:
            staging_dir.mkdir(parents=True, exist_ok=False)
            lance_written = self._config.write_lance
            for table in tables:
                write_table(staging_dir, table, lance_written)
            write_manifest_file(
                staging_dir,
                manifest,
                {table.name: table.columns for table in tables},
                lance_written,
                details or {},
            )
            staging_dir.rename(version_dir)
            write_catalog(self._layer_root(layer) / CATALOG_FILE_NAME, manifest)
        except SilverlineError:
            shutil.rmtree(staging_dir, ignore_errors=True)
            raise
        except OSError as error:
            shutil.rmtree(staging_dir, ignore_errors=True)
            raise SilverlineStoreError(
                f"Failed to publish {layer} version {version_id}: {error}. "
                "Check write permissions and available disk space.",
                code="E_STORE_WRITE",
            ) from error
        except Exception as error:
            shutil.rmtree(staging_dir, ignore_errors=True)
            raise SilverlineStoreError(
                f"Failed to publish {layer} version {version_id}: {error}. "
                "Inspect the table payloads, then re-run.",
                code="E_STORE_WRITE",
            ) from error
        self._prune_superseded(layer, version_id)
        _LOGGER.info(
            "version_published",
            layer=layer,
            version_id=version_id,
            parent_version=parent_version,
            table_counts=dict(manifest.table_counts),
            lance_written=lance_written,
        )
        return manifest

    def latest_manifest(self, layer: LayerName) -> LayerManifest:
        """Return the manifest of the latest published version.

        Raises:
            SilverlineStoreError: If the layer was never published.
        """
        catalog = read_catalog_file(self._layer_root(layer) / CATALOG_FILE_NAME)
        latest_version = catalog.get("latest_version")
        versions = cast(list[dict[str, Any]], catalog.get("versions", []))
        for payload in versions:
            if payload.get("version_id") == latest_version:
                return manifest_from_dict(payload)
        raise SilverlineStoreError(
            f"Layer '{layer}' catalog points at unknown version '{latest_version}'. "
            "Re-run the producing step to republish the layer.",
            code="E_STORE_READ",
        )

    def load_table(
        self,
        layer: LayerName,
        table_name: str,
    ) -> tuple[LayerManifest, list[EntityRecord]]:
        """Load one table from the latest version of a layer.

        Args:
            layer: Layer name.
            table_name: Table to load.

        Returns:
            Pair of manifest and typed records.

        Raises:
            SilverlineStoreError: If the layer or table is missing.
        """
        manifest = self.latest_manifest(layer)
        version_dir = self._version_dir(layer, manifest.version_id)
        table_schemas = _table_schemas(version_dir)
        if table_name not in table_schemas:
            raise SilverlineStoreError(
                f"Table '{table_name}' is not part of {layer} version {manifest.version_id}. "
                f"Available tables: {', '.join(sorted(table_schemas))}.",
                code="E_STORE_READ",
            )
        return manifest, read_table(version_dir, table_name, table_schemas[table_name])

    def load_tables(
        self,
        layer: LayerName,
    ) -> tuple[LayerManifest, dict[str, list[EntityRecord]]]:
        """Load every table of the latest version of a layer."""
        manifest = self.latest_manifest(layer)
        version_dir = self._version_dir(layer, manifest.version_id)
        table_schemas = _table_schemas(version_dir)
        tables = {
            name: read_table(version_dir, name, columns) for name, columns in table_schemas.items()
        }
        return manifest, tables

    def _layer_root(self, layer: LayerName) -> Path:
        return self._data_root / layer

    def _versions_root(self, layer: LayerName) -> Path:
        versions_root = self._layer_root(layer) / VERSIONS_DIR_NAME
        versions_root.mkdir(parents=True, exist_ok=True)
        return versions_root

    def _version_dir(self, layer: LayerName, version_id: str) -> Path:
        """Return a published version directory.

        Raises:
            SilverlineStoreError: If the version directory is missing.
        """
        version_dir = self._layer_root(layer) / VERSIONS_DIR_NAME / version_id
        if not version_dir.is_dir():
            raise SilverlineStoreError(
                f"Missing version directory for {layer}:{version_id} at {version_dir}. "
                "Re-run the producing step to republish the layer.",
                code="E_STORE_READ",
            )
        return version_dir

    def _prune_superseded(self, layer: LayerName, keep_version: str) -> None:
        """Delete every version directory except the published one."""
        for entry in sorted(self._versions_root(layer).iterdir()):
            if entry.name == keep_version or not entry.is_dir():
                continue
            shutil.rmtree(entry, ignore_errors=True)
            _LOGGER.info("version_pruned", layer=layer, version_id=entry.name)


def _table_schemas(version_dir: Path) -> dict[str, dict[str, ColumnType]]:
    manifest_payload = read_manifest_file(version_dir)
    return cast(dict[str, dict[str, ColumnType]], manifest_payload.get("tables", {}))
