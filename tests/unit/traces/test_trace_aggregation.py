from __future__ import annotations

from pathlib import Path

import pytest

from build_orchestrator.config import CoverageConfig
from build_orchestrator.traces import (
    AggregationError,
    CoverageAggregator,
    TraceArtifact,
    TraceArtifactError,
)

LOADER = "randomizer/wrapper/loader.py"
EXECUTOR = "randomizer/wrapper/executor.py"


def test_union_of_lines_across_traces(coverage_config: CoverageConfig, write_trace) -> None:
    first = write_trace("test", {LOADER: [1, 2]})
    second = write_trace("run", {LOADER: [2, 3]})

    model = CoverageAggregator(coverage_config).aggregate([first, second])

    assert model.get(LOADER).lines == frozenset({1, 2, 3})
    assert model.trace_count == 2


def test_merge_order_does_not_change_model(coverage_config: CoverageConfig, write_trace) -> None:
    first = write_trace("test", {LOADER: [1, 2], EXECUTOR: [3]})
    second = write_trace("run", {LOADER: [2, 3], "randomizer/__init__.py": [1]})
    aggregator = CoverageAggregator(coverage_config)

    forward = aggregator.aggregate([first, second])
    backward = aggregator.aggregate([second, first])

    assert forward == backward


def test_grouping_of_traces_does_not_change_model(
    coverage_config: CoverageConfig, write_trace
) -> None:
    first = write_trace("a", {LOADER: [1]})
    second = write_trace("b", {LOADER: [2], EXECUTOR: [1]})
    third = write_trace("c", {EXECUTOR: [2, 3]})
    aggregator = CoverageAggregator(coverage_config)

    all_at_once = aggregator.aggregate([first, second, third])
    reordered = aggregator.aggregate([third, first, second])

    assert all_at_once.covered_lines() == reordered.covered_lines()


def test_adding_a_trace_never_reduces_coverage(
    coverage_config: CoverageConfig, write_trace
) -> None:
    first = write_trace("test", {LOADER: [1, 2], EXECUTOR: [1]})
    second = write_trace("run", {LOADER: [3]})
    aggregator = CoverageAggregator(coverage_config)

    smaller = aggregator.aggregate([first]).covered_lines()
    larger = aggregator.aggregate([first, second]).covered_lines()

    for path, lines in smaller.items():
        assert lines <= larger[path]


def test_excluded_binaries_contribute_nothing(
    coverage_config: CoverageConfig, write_trace
) -> None:
    trace = write_trace(
        "test",
        {
            LOADER: [1],
            "randomizer/support/helpers.py": [1, 2, 3],
            "randomizer/logger/log.py": [1],
        },
    )

    model = CoverageAggregator(coverage_config).aggregate([trace])

    assert model.get("randomizer/support/helpers.py") is None
    assert model.get("randomizer/logger/log.py") is None
    assert model.paths() == (
        "randomizer/__init__.py",
        EXECUTOR,
        LOADER,
    )


def test_unexecuted_binaries_are_present_with_no_lines(
    coverage_config: CoverageConfig, write_trace
) -> None:
    trace = write_trace("test", {LOADER: [1]})

    model = CoverageAggregator(coverage_config).aggregate([trace])

    assert model.get(EXECUTOR).lines == frozenset()
    assert model.summary()["files_with_coverage"] == 1


def test_binary_outside_authoritative_set_is_ignored(
    coverage_config: CoverageConfig, write_trace, tmp_path: Path
) -> None:
    foreign = tmp_path / "elsewhere" / "app.py"
    foreign.parent.mkdir()
    foreign.write_text("print('app')\n", encoding="utf-8")
    trace = write_trace("run", {str(foreign): [1], LOADER: [2]})

    model = CoverageAggregator(coverage_config).aggregate([trace])

    assert str(foreign) not in model.paths()
    assert "app.py" not in {Path(path).name for path in model.paths()}
    assert model.get(LOADER).lines == frozenset({2})


def test_trace_artifact_inputs_are_accepted(coverage_config: CoverageConfig, write_trace) -> None:
    path = write_trace("test", {LOADER: [1]})
    artifact = TraceArtifact(context="test", kind="test", path=path)

    model = CoverageAggregator(coverage_config).aggregate([artifact])

    assert model.get(LOADER).lines == frozenset({1})


def test_missing_trace_aborts_aggregation(coverage_config: CoverageConfig, write_trace) -> None:
    present = write_trace("test", {LOADER: [1]})
    missing = coverage_config.trace_dir / "run.coverage"

    with pytest.raises(TraceArtifactError) as error:
        CoverageAggregator(coverage_config).aggregate([present, missing])

    assert error.value.reason == "Trace artifact does not exist"
    assert error.value.path == missing


def test_corrupt_trace_aborts_aggregation(coverage_config: CoverageConfig) -> None:
    corrupt = coverage_config.trace_dir / "run.coverage"
    corrupt.parent.mkdir(parents=True)
    corrupt.write_bytes(b"this is definitely not a coverage database" * 4)

    with pytest.raises(TraceArtifactError) as error:
        CoverageAggregator(coverage_config).aggregate([corrupt])

    assert error.value.reason == "Trace artifact is unreadable"


def test_empty_trace_file_aborts_aggregation(coverage_config: CoverageConfig) -> None:
    empty = coverage_config.trace_dir / "run.coverage"
    empty.parent.mkdir(parents=True)
    empty.write_bytes(b"")

    with pytest.raises(TraceArtifactError) as error:
        CoverageAggregator(coverage_config).aggregate([empty])

    assert error.value.reason == "Trace artifact is empty"
    assert empty.read_bytes() == b""


def test_aggregation_does_not_modify_traces(coverage_config: CoverageConfig, write_trace) -> None:
    trace = write_trace("test", {LOADER: [1, 2]})
    before = trace.read_bytes()

    CoverageAggregator(coverage_config).aggregate([trace])

    assert trace.read_bytes() == before


def test_branch_traces_merge_arcs(coverage_config: CoverageConfig, write_trace) -> None:
    first = write_trace("test", arcs={LOADER: [(-1, 1), (1, 2)]})
    second = write_trace("run", arcs={LOADER: [(1, 3), (3, -1)]})

    model = CoverageAggregator(coverage_config).aggregate([first, second])

    assert model.has_arcs is True
    assert model.get(LOADER).arcs == frozenset({(-1, 1), (1, 2), (1, 3), (3, -1)})
    assert model.get(LOADER).lines == frozenset({1, 2, 3})


def test_mixed_branch_and_line_traces_merge_as_lines(
    coverage_config: CoverageConfig, write_trace
) -> None:
    lines = write_trace("test", {LOADER: [1, 2]})
    arcs = write_trace("run", arcs={LOADER: [(-1, 2), (2, 3)]})

    model = CoverageAggregator(coverage_config).aggregate([lines, arcs])

    loader = model.get(LOADER)
    assert loader is not None
    assert loader.lines == frozenset({1, 2, 3})
    assert loader.arcs == frozenset()
    assert model.has_arcs is False


def test_no_traces_is_an_error(coverage_config: CoverageConfig) -> None:
    with pytest.raises(ValueError, match="At least one trace"):
        CoverageAggregator(coverage_config).aggregate([])


def test_missing_source_root_is_an_error(tmp_path: Path, write_trace) -> None:
    trace = write_trace("test", {LOADER: [1]})
    config = CoverageConfig(
        source_root=tmp_path / "does-not-exist",
        build_dir=tmp_path / "build",
        report_dir=tmp_path / "report",
    )

    with pytest.raises(AggregationError, match="source root does not exist"):
        CoverageAggregator(config).aggregate([trace])
