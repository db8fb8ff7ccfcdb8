"""Coverage trace collection and cross-execution aggregation."""

from .aggregator import CoverageAggregator, discover_binaries, load_trace, should_exclude
from .collector import CoverageCollector, run_process
from .errors import AggregationError, ExecutionFailedError, TraceArtifactError
from .models import (
    ApplicationRunContext,
    CoverageModel,
    ExecutionContext,
    FileCoverage,
    TraceArtifact,
    UnitTestContext,
)
from .report import render_html_report, write_coverage_data

__all__ = [
    "AggregationError",
    "ApplicationRunContext",
    "CoverageAggregator",
    "CoverageCollector",
    "CoverageModel",
    "ExecutionContext",
    "ExecutionFailedError",
    "FileCoverage",
    "TraceArtifact",
    "TraceArtifactError",
    "UnitTestContext",
    "discover_binaries",
    "load_trace",
    "render_html_report",
    "run_process",
    "should_exclude",
    "write_coverage_data",
]
