"""Sequenced pipelines with one audit event per step."""

from __future__ import annotations

import uuid
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import TypeVar

from coverage.exceptions import CoverageException

from build_orchestrator.config import OrchestratorConfig
from build_orchestrator.logging import (
    AuditEvent,
    JsonlAuditLogger,
    sanitize_metadata,
    utc_timestamp,
)
from build_orchestrator.resources import (
    AssetNotFoundError,
    FileSystem,
    ManifestGenerator,
    ManifestNotFoundError,
    ManifestWriteError,
    ResourceSynchronizer,
    SyncError,
    extract_assets,
)
from build_orchestrator.security import PathBlockedError
from build_orchestrator.traces import (
    AggregationError,
    ApplicationRunContext,
    CoverageAggregator,
    CoverageCollector,
    CoverageModel,
    ExecutionContext,
    ExecutionFailedError,
    TraceArtifact,
    TraceArtifactError,
    UnitTestContext,
    render_html_report,
    write_coverage_data,
)
from build_orchestrator.traces.collector import ProcessRunner

T = TypeVar("T")

COMBINED_DATA_FILE_NAME = "combined.coverage"


def error_code_for(exc: BaseException) -> str:
    """Map pipeline failures to stable error codes."""
    if isinstance(exc, PathBlockedError):
        return "PATH_BLOCKED"
    if isinstance(exc, SyncError):
        return "SYNC_FAILED"
    if isinstance(exc, ManifestWriteError):
        return "MANIFEST_WRITE_FAILED"
    if isinstance(exc, ManifestNotFoundError):
        return "MANIFEST_NOT_FOUND"
    if isinstance(exc, AssetNotFoundError):
        return "ASSET_NOT_FOUND"
    if isinstance(exc, ExecutionFailedError):
        return "EXECUTION_FAILED"
    if isinstance(exc, TraceArtifactError):
        return "TRACE_INVALID"
    if isinstance(exc, AggregationError):
        return "AGGREGATION_FAILED"
    if isinstance(exc, CoverageException):
        return "REPORT_FAILED"
    if isinstance(exc, ValueError):
        return "INVALID_PARAMS"
    if isinstance(exc, OSError):
        return "IO_ERROR"
    return "INTERNAL_ERROR"


class StepRecorder:
    """Runs named steps and appends one audit event for each."""

    def __init__(self, logger: JsonlAuditLogger, run_id: str | None = None) -> None:
        self._logger = logger
        self.run_id = run_id or f"run-{uuid.uuid4().hex[:12]}"

    def run(self, step: str, action: Callable[[], T], metadata: dict[str, object]) -> T:
        try:
            result = action()
        except Exception as exc:
            self._append(step, ok=False, error_code=error_code_for(exc), metadata=metadata)
            raise
        self._append(step, ok=True, error_code=None, metadata=metadata)
        return result

    def _append(
        self, step: str, ok: bool, error_code: str | None, metadata: dict[str, object]
    ) -> None:
        self._logger.append(
            AuditEvent(
                timestamp=utc_timestamp(),
                run_id=self.run_id,
                step=step,
                ok=ok,
                error_code=error_code,
                metadata=sanitize_metadata(metadata),
            )
        )


def audit_logger_for(config: OrchestratorConfig) -> JsonlAuditLogger:
    return JsonlAuditLogger(path=config.data_dir / "audit.jsonl")


class ResourcePipeline:
    """Synchronize packaged assets, then publish their manifest."""

    def __init__(
        self,
        config: OrchestratorConfig,
        filesystem: FileSystem | None = None,
        logger: JsonlAuditLogger | None = None,
    ) -> None:
        self._config = config
        self._synchronizer = ResourceSynchronizer(config.resources, filesystem)
        self._generator = ManifestGenerator(config.resources, filesystem)
        self._logger = logger or audit_logger_for(config)

    def run(self) -> dict[str, object]:
        """Sync then regenerate the manifest; a failed sync stops the pipeline."""
        recorder = StepRecorder(self._logger)
        sync_result = recorder.run("resources.sync", self._synchronizer.sync, {})
        plan = sync_result.plan
        manifest = recorder.run(
            "resources.manifest",
            self._generator.generate,
            {
                "added": len(plan.added),
                "updated": len(plan.updated),
                "removed": len(plan.removed),
            },
        )
        return {
            "run_id": recorder.run_id,
            "sync": sync_result.to_dict(),
            "manifest": {"path": str(manifest.path), "entries": list(manifest.entries)},
        }

    def generate_manifest(self) -> dict[str, object]:
        recorder = StepRecorder(self._logger)
        manifest = recorder.run("resources.manifest", self._generator.generate, {})
        return {
            "run_id": recorder.run_id,
            "manifest": {"path": str(manifest.path), "entries": list(manifest.entries)},
        }

    def extract(self, target_dir: Path, overwrite: bool = False) -> dict[str, object]:
        recorder = StepRecorder(self._logger)
        result = recorder.run(
            "resources.extract",
            lambda: extract_assets(
                self._config.resources.packaged_dir,
                target_dir,
                manifest_name=self._config.resources.manifest_name,
                overwrite=overwrite,
            ),
            {"overwrite": overwrite},
        )
        return {
            "run_id": recorder.run_id,
            "target_dir": str(result.target_dir),
            "extracted": list(result.extracted),
            "skipped": list(result.skipped),
        }


class CoveragePipeline:
    """Collect traces per execution context, merge them, optionally render."""

    def __init__(
        self,
        config: OrchestratorConfig,
        runner: ProcessRunner | None = None,
        logger: JsonlAuditLogger | None = None,
    ) -> None:
        self._config = config
        self._collector = CoverageCollector(config.coverage, runner=runner)
        self._aggregator = CoverageAggregator(config.coverage)
        self._logger = logger or audit_logger_for(config)

    def available_contexts(self) -> dict[str, ExecutionContext]:
        """Return configured contexts keyed by name."""
        coverage = self._config.coverage
        contexts: dict[str, ExecutionContext] = {
            "test": UnitTestContext(
                pytest_args=coverage.test_args,
                working_dir=self._config.project_root,
            )
        }
        if coverage.app_module is not None:
            contexts["run"] = ApplicationRunContext(
                module=coverage.app_module,
                working_dir=coverage.app_working_dir or self._config.project_root,
                args=coverage.app_args,
            )
        return contexts

    def select_contexts(self, names: Sequence[str] | None = None) -> list[ExecutionContext]:
        available = self.available_contexts()
        if not names:
            return list(available.values())
        selected: list[ExecutionContext] = []
        for name in names:
            if name not in available:
                raise ValueError(f"Unknown or unconfigured execution context: {name}")
            selected.append(available[name])
        return selected

    def collect(
        self,
        contexts: Sequence[ExecutionContext],
        recorder: StepRecorder | None = None,
    ) -> list[TraceArtifact]:
        recorder = recorder or StepRecorder(self._logger)
        return recorder.run(
            "coverage.collect",
            lambda: self._collector.collect_all(contexts),
            {"contexts": [context.name for context in contexts]},
        )

    def aggregate(
        self,
        traces: Sequence[TraceArtifact | Path],
        recorder: StepRecorder | None = None,
    ) -> CoverageModel:
        recorder = recorder or StepRecorder(self._logger)
        return recorder.run(
            "coverage.aggregate",
            lambda: self._aggregator.aggregate(traces),
            {"traces": len(traces), "exclude_globs": list(self._config.coverage.exclude_globs)},
        )

    def export(
        self,
        model: CoverageModel,
        render: bool,
        recorder: StepRecorder | None = None,
    ) -> dict[str, object]:
        recorder = recorder or StepRecorder(self._logger)
        coverage = self._config.coverage
        data_file = recorder.run(
            "coverage.export",
            lambda: write_coverage_data(
                model, coverage.source_root, coverage.trace_dir / COMBINED_DATA_FILE_NAME
            ),
            {"files": len(model.files)},
        )
        output: dict[str, object] = {"data_file": str(data_file)}
        if render:
            percent = recorder.run(
                "coverage.render",
                lambda: render_html_report(data_file, coverage.report_dir),
                {},
            )
            output["report_dir"] = str(coverage.report_dir)
            output["percent_covered"] = round(percent, 2)
        return output

    def run(
        self,
        context_names: Sequence[str] | None = None,
        render: bool = True,
    ) -> dict[str, object]:
        """Collect -> aggregate -> export; any failure stops later steps."""
        recorder = StepRecorder(self._logger)
        contexts = self.select_contexts(context_names)
        traces = self.collect(contexts, recorder)
        model = self.aggregate(traces, recorder)
        return {
            "run_id": recorder.run_id,
            "traces": [trace.to_dict() for trace in traces],
            "summary": model.summary(),
            "report": self.export(model, render, recorder),
        }
