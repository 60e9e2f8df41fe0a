"""Silverline exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations


class SilverlineError(Exception):
    """Base exception for all Silverline failures."""


class SilverlineConfigError(SilverlineError):
    """Raised for invalid runtime configuration."""


class SilverlineDependencyError(SilverlineError):
    """Raised when an optional runtime dependency is missing."""


class SilverlineRunSpecError(SilverlineError):
    """Raised for invalid or unsupported run-spec configuration."""


class SilverlineStageError(SilverlineError):
    """Stage-fatal failure carrying an error code and stage context.

    Attributes:
        code: Stable machine-readable error code.
        stage: Pipeline stage that failed (extract, transform, store, scan).
        entity: Entity being processed, when known.
    """

    def __init__(
        self,
        message: str,
        code: str,
        stage: str,
        entity: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.stage = stage
        self.entity = entity


class SilverlineExtractError(SilverlineStageError):
    """Raised when raw extracts are missing or malformed."""

    def __init__(self, message: str, code: str, entity: str | None = None) -> None:
        super().__init__(message, code=code, stage="extract", entity=entity)


class SilverlineTransformError(SilverlineStageError):
    """Raised for transform engine failures."""

    def __init__(self, message: str, code: str, entity: str | None = None) -> None:
        super().__init__(message, code=code, stage="transform", entity=entity)


class SilverlineStoreError(SilverlineStageError):
    """Raised for warehouse store and versioning failures."""

    def __init__(self, message: str, code: str = "E_STORE", entity: str | None = None) -> None:
        super().__init__(message, code=code, stage="store", entity=entity)


class SilverlineQualityError(SilverlineStageError):
    """Raised when a data-quality check cannot be evaluated."""

    def __init__(self, message: str, code: str, entity: str | None = None) -> None:
        super().__init__(message, code=code, stage="scan", entity=entity)
