"""Transform orchestration for the validated entity layer.

This module runs every entity stage in foreign-key order, feeds each stage
the validated keys of its parents, and publishes all validated tables plus
the exclusion audit as one atomic silver version.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Mapping, Sequence

from core.config import SilverlineConfig
from core.constants import REJECTION_TABLE_NAME, SILVER_LAYER_NAME
from core.errors import SilverlineError, SilverlineStageError, SilverlineTransformError
from core.logging_config import get_logger
from core.types import ColumnType, Rejection, StageResult, TransformReport
from ingest.extract_reader import ExtractReader
from store.table_codec import TablePayload
from store.warehouse_store import WarehouseStore
from transforms.dependency_graph import resolve_stage_levels
from transforms.entity_catalog import ENTITY_SPECS
from transforms.entity_spec import DerivationContext, EntitySpec
from transforms.transform_engine import collect_key_values, output_schema, run_entity_stage

_LOGGER = get_logger(__name__)

REJECTION_COLUMNS: dict[str, ColumnType] = {
    "entity": "str",
    "primary_key": "str",
    "stage": "str",
    "reason": "str",
}


class TransformPipelineRunner:
    """Runner for one full rebuild of the validated entity layer."""

    def __init__(
        self,
        config: SilverlineConfig,
        specs: Sequence[EntitySpec] = ENTITY_SPECS,
    ) -> None:
        self._config = config
        self._specs = tuple(specs)
        self._reader = ExtractReader(config)
        self._store = WarehouseStore(config)
        self._context = DerivationContext(as_of=config.as_of)

    def run(self) -> TransformReport:
        """Execute every stage and publish the validated layer.

        Returns:
            Report with the published version id and per-stage results.

        Raises:
            SilverlineStageError: If any stage fails; nothing is published.
        """
        completed: dict[str, StageResult] = {}
        for level in resolve_stage_levels(self._specs):
            for result in self._run_level(level, completed):
                completed[result.entity] = result
        stages = tuple(completed[spec.name] for spec in self._specs)
        version_id = self._publish(stages)
        report = TransformReport(version_id=version_id, as_of=self._config.as_of, stages=stages)
        _log_transform_completion(report)
        return report

    def _run_level(
        self,
        level: Sequence[EntitySpec],
        completed: Mapping[str, StageResult],
    ) -> list[StageResult]:
        if self._config.max_workers == 1 or len(level) == 1:
            return [self._run_stage(spec, completed) for spec in level]
        worker_count = min(self._config.max_workers, len(level))
        with ThreadPoolExecutor(max_workers=worker_count) as pool:
            futures = [pool.submit(self._run_stage, spec, completed) for spec in level]
            return [future.result() for future in futures]

    def _run_stage(self, spec: EntitySpec, completed: Mapping[str, StageResult]) -> StageResult:
        try:
            raw_rows = self._reader.read_extract(spec.source_file, spec.raw_columns, spec.name)
            result = run_entity_stage(
                spec, raw_rows, _parent_keys(spec, completed), self._context
            )
        except SilverlineStageError as error:
            _log_stage_failure(error.code, error.stage, spec.name, str(error))
            raise
        except SilverlineError:
            raise
        except Exception as error:
            _log_stage_failure("E_STAGE_FAILED", "transform", spec.name, str(error))
            raise SilverlineTransformError(
                f"Stage '{spec.name}' failed: {error}. "
                "Inspect the raw extract and entity rules, then re-run the transform.",
                code="E_STAGE_FAILED",
                entity=spec.name,
            ) from error
        _LOGGER.info(
            "stage_completed",
            entity=result.entity,
            raw_count=result.raw_count,
            candidate_count=result.candidate_count,
            deduplicated_count=result.deduplicated_count,
            admitted_count=result.admitted_count,
            rejected_count=len(result.rejections),
        )
        return result

    def _publish(self, stages: Sequence[StageResult]) -> str:
        spec_by_name = {spec.name: spec for spec in self._specs}
        tables = [
            TablePayload(
                name=stage.table,
                columns=output_schema(spec_by_name[stage.entity]),
                records=stage.records,
            )
            for stage in stages
        ]
        rejections = [rejection for stage in stages for rejection in stage.rejections]
        tables.append(
            TablePayload(
                name=REJECTION_TABLE_NAME,
                columns=REJECTION_COLUMNS,
                records=tuple(_rejection_record(rejection) for rejection in rejections),
            )
        )
        manifest = self._store.publish(
            SILVER_LAYER_NAME,
            tables,
            as_of=self._config.as_of,
            details={"stages": [_stage_statistics(stage) for stage in stages]},
        )
        return manifest.version_id


def run_transform(config: SilverlineConfig) -> TransformReport:
    """Rebuild the validated entity layer from the current raw extracts.

    Args:
        config: Runtime configuration.

    Returns:
        Transform report for the published version.

    Raises:
        SilverlineExtractError: If a raw extract is missing or malformed.
        SilverlineTransformError: If a stage fails.
        SilverlineStoreError: If publishing fails.
    """
    runner = TransformPipelineRunner(config)
    return runner.run()


def _parent_keys(
    spec: EntitySpec,
    completed: Mapping[str, StageResult],
) -> dict[str, frozenset[object]]:
    """Collect validated parent key values for each foreign key of a stage."""
    parent_keys: dict[str, frozenset[object]] = {}
    for foreign_key in spec.foreign_keys:
        parent_result = completed[foreign_key.parent]
        parent_keys[foreign_key.parent] = collect_key_values(
            parent_result.records, foreign_key.parent_column
        )
    return parent_keys


def _rejection_record(rejection: Rejection) -> dict[str, object]:
    return {
        "entity": rejection.entity,
        "primary_key": rejection.primary_key,
        "stage": rejection.stage,
        "reason": rejection.reason,
    }


def _stage_statistics(stage: StageResult) -> dict[str, object]:
    return {
        "entity": stage.entity,
        "raw_count": stage.raw_count,
        "candidate_count": stage.candidate_count,
        "deduplicated_count": stage.deduplicated_count,
        "admitted_count": stage.admitted_count,
        "rejected_count": len(stage.rejections),
    }


def _log_stage_failure(code: str, stage: str, entity: str, message: str) -> None:
    _LOGGER.error("stage_failed", code=code, stage=stage, entity=entity, message=message)


def _log_transform_completion(report: TransformReport) -> None:
    """Log pipeline completion with contextual metadata."""
    _LOGGER.info(
        "transform_completed",
        version_id=report.version_id,
        as_of=report.as_of.isoformat(),
        entity_count=len(report.stages),
        admitted_count=sum(stage.admitted_count for stage in report.stages),
        rejected_count=report.rejected_count,
    )
