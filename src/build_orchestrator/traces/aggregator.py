"""Merge coverage traces from independent executions into one model."""

from __future__ import annotations

import fnmatch
import os
import sqlite3
from collections.abc import Sequence
from pathlib import Path

from coverage import CoverageData
from coverage.exceptions import CoverageException

from build_orchestrator.config import CoverageConfig
from build_orchestrator.traces.errors import AggregationError, TraceArtifactError
from build_orchestrator.traces.models import CoverageModel, FileCoverage, TraceArtifact

BINARY_SUFFIX = ".py"
_PRUNED_DIR_NAMES = {"__pycache__"}


def should_exclude(relative_path: str, exclude_globs: tuple[str, ...]) -> bool:
    """Return True when a path matches configured exclusion globs."""
    anchored = f"/{relative_path}"
    return any(
        fnmatch.fnmatch(relative_path, pattern) or fnmatch.fnmatch(anchored, pattern)
        for pattern in exclude_globs
    )


def discover_binaries(source_root: Path) -> tuple[str, ...]:
    """List instrumentable sources under source_root as sorted relative POSIX paths."""
    root = source_root.resolve()
    if not root.is_dir():
        raise AggregationError("Instrumented source root does not exist", root)
    output: list[str] = []
    for current, dir_names, file_names in os.walk(root):
        dir_names[:] = sorted(name for name in dir_names if name not in _PRUNED_DIR_NAMES)
        for file_name in file_names:
            if not file_name.endswith(BINARY_SUFFIX):
                continue
            output.append((Path(current) / file_name).relative_to(root).as_posix())
    output.sort()
    return tuple(output)


def load_trace(path: Path) -> CoverageData:
    """Open a trace artifact read-only; anything unusable is fatal."""
    if not path.is_file():
        raise TraceArtifactError("Trace artifact does not exist", path)
    if path.stat().st_size == 0:
        raise TraceArtifactError("Trace artifact is empty", path)
    data = CoverageData(basename=str(path))
    try:
        data.read()
        data.measured_files()
    except (CoverageException, sqlite3.Error) as exc:
        raise TraceArtifactError("Trace artifact is unreadable", path) from exc
    return data


class CoverageAggregator:
    """Unions covered lines and arcs across traces for the authoritative file set."""

    def __init__(self, config: CoverageConfig) -> None:
        self._config = config
        self._root = config.source_root.resolve()

    def instrumented_binaries(self) -> tuple[str, ...]:
        """Return the authoritative file set after exclusion filtering."""
        return tuple(
            path
            for path in discover_binaries(self._root)
            if not should_exclude(path, self._config.exclude_globs)
        )

    def aggregate(self, traces: Sequence[TraceArtifact | Path]) -> CoverageModel:
        """Merge every trace; order of traces never changes the result."""
        if not traces:
            raise ValueError("At least one trace artifact is required.")
        binaries = self.instrumented_binaries()
        lines: dict[str, set[int]] = {path: set() for path in binaries}
        arcs: dict[str, set[tuple[int, int]]] = {path: set() for path in binaries}

        measurements: set[str] = set()
        for trace in traces:
            trace_path = trace.path if isinstance(trace, TraceArtifact) else trace
            data = load_trace(trace_path)
            if data.measured_files():
                measurements.add("arcs" if data.has_arcs() else "lines")
            self._merge_trace(data, lines, arcs)

        # Arcs only survive when every contributing trace measured them.
        has_arcs = measurements == {"arcs"}
        files = tuple(
            FileCoverage(
                path=path,
                lines=frozenset(lines[path]),
                arcs=frozenset(arcs[path]) if has_arcs else frozenset(),
            )
            for path in binaries
        )
        return CoverageModel(
            files=files,
            has_arcs=has_arcs,
            trace_count=len(traces),
        )

    def _merge_trace(
        self,
        data: CoverageData,
        lines: dict[str, set[int]],
        arcs: dict[str, set[tuple[int, int]]],
    ) -> None:
        for measured in sorted(data.measured_files()):
            key = self._binary_key(measured)
            # Other executions may instrument files this build does not own.
            if key is None or key not in lines:
                continue
            lines[key].update(data.lines(measured) or ())
            if data.has_arcs():
                arcs[key].update(data.arcs(measured) or ())

    def _binary_key(self, measured_file: str) -> str | None:
        candidate = Path(measured_file)
        if not candidate.is_absolute():
            candidate = self._root / candidate
        resolved = candidate.resolve(strict=False)
        if not resolved.is_relative_to(self._root):
            return None
        return resolved.relative_to(self._root).as_posix()
