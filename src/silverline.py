"""Public SDK surface for Silverline.

This module provides a stable import path for warehouse users.
It re-exports the client, the run entry points, and typed result models.
"""

from __future__ import annotations

from core.config import SilverlineConfig
from core.errors import SilverlineError, SilverlineStageError
from core.types import (
    Issue,
    IssueSummaryRow,
    Rejection,
    ScanReport,
    StageResult,
    TransformReport,
)
from ingest.pipeline import run_transform
from quality.rules import build_default_catalog
from quality.scanner import run_dq_scan
from store.warehouse_sdk import SilverlineClient
from transforms.entity_catalog import ENTITY_SPECS

__all__ = [
    "ENTITY_SPECS",
    "Issue",
    "IssueSummaryRow",
    "Rejection",
    "ScanReport",
    "SilverlineClient",
    "SilverlineConfig",
    "SilverlineError",
    "SilverlineStageError",
    "StageResult",
    "TransformReport",
    "build_default_catalog",
    "run_dq_scan",
    "run_transform",
]
