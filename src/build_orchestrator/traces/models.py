"""Typed models for execution contexts, trace artifacts and merged coverage."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar


@dataclass(slots=True, frozen=True)
class UnitTestContext:
    """A pytest run of the library's test suite."""

    kind: ClassVar[str] = "test"

    name: str = "test"
    pytest_args: tuple[str, ...] = ("tests",)
    working_dir: Path | None = None

    def target_args(self) -> list[str]:
        return ["-m", "pytest", *self.pytest_args]


@dataclass(slots=True, frozen=True)
class ApplicationRunContext:
    """A full application run launched from where its runtime assets live."""

    kind: ClassVar[str] = "application"

    module: str
    working_dir: Path
    name: str = "run"
    args: tuple[str, ...] = ()

    def target_args(self) -> list[str]:
        return ["-m", self.module, *self.args]


ExecutionContext = UnitTestContext | ApplicationRunContext


@dataclass(slots=True, frozen=True)
class TraceArtifact:
    """One immutable coverage data file produced by one execution context."""

    context: str
    kind: str
    path: Path

    def to_dict(self) -> dict[str, object]:
        return {"context": self.context, "kind": self.kind, "path": str(self.path)}


@dataclass(slots=True, frozen=True)
class FileCoverage:
    """Covered locations of one instrumented source file."""

    path: str
    lines: frozenset[int]
    arcs: frozenset[tuple[int, int]]

    @property
    def covered_line_count(self) -> int:
        return len(self.lines)


@dataclass(slots=True, frozen=True)
class CoverageModel:
    """Union of covered locations per instrumented file, sorted by path."""

    files: tuple[FileCoverage, ...]
    has_arcs: bool
    trace_count: int

    def get(self, path: str) -> FileCoverage | None:
        for item in self.files:
            if item.path == path:
                return item
        return None

    def paths(self) -> tuple[str, ...]:
        return tuple(item.path for item in self.files)

    def covered_lines(self) -> dict[str, frozenset[int]]:
        return {item.path: item.lines for item in self.files}

    def summary(self) -> dict[str, object]:
        """Return per-file covered line counts and totals."""
        per_file = {item.path: item.covered_line_count for item in self.files}
        return {
            "trace_count": self.trace_count,
            "file_count": len(self.files),
            "files_with_coverage": sum(1 for count in per_file.values() if count > 0),
            "covered_lines": sum(per_file.values()),
            "branch": self.has_arcs,
            "files": per_file,
        }
