from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from coverage import CoverageData

from build_orchestrator.config import CoverageConfig

LIBRARY_FILES = (
    "randomizer/__init__.py",
    "randomizer/wrapper/loader.py",
    "randomizer/wrapper/executor.py",
    "randomizer/support/helpers.py",
    "randomizer/logger/log.py",
)


@pytest.fixture
def coverage_config(tmp_path: Path) -> CoverageConfig:
    source_root = tmp_path / "lib"
    for relative in LIBRARY_FILES:
        path = source_root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("x = 1\ny = 2\nz = 3\n", encoding="utf-8")
    return CoverageConfig(
        source_root=source_root,
        build_dir=tmp_path / "build",
        report_dir=tmp_path / "coverage" / "combined",
    )


@pytest.fixture
def write_trace(coverage_config: CoverageConfig) -> Callable[..., Path]:
    """Write a coverage.py data file keyed by library-relative or absolute paths."""

    def _write(
        name: str,
        lines: dict[str, list[int]] | None = None,
        arcs: dict[str, list[tuple[int, int]]] | None = None,
    ) -> Path:
        path = coverage_config.trace_dir / f"{name}.coverage"
        path.parent.mkdir(parents=True, exist_ok=True)
        data = CoverageData(basename=str(path))
        if arcs is not None:
            data.add_arcs({_absolute(coverage_config, key): value for key, value in arcs.items()})
        else:
            data.add_lines(
                {_absolute(coverage_config, key): value for key, value in (lines or {}).items()}
            )
        data.write()
        return path

    return _write


def _absolute(config: CoverageConfig, key: str) -> str:
    candidate = Path(key)
    if candidate.is_absolute():
        return str(candidate)
    return str(config.source_root / candidate)
