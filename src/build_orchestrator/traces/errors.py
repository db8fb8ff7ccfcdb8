"""Errors raised while collecting and merging coverage traces."""

from __future__ import annotations

from pathlib import Path


class AggregationError(Exception):
    """Raised when coverage aggregation cannot produce a trustworthy model."""

    def __init__(self, reason: str, path: Path) -> None:
        super().__init__(f"{reason}: {path}")
        self.reason = reason
        self.path = path


class TraceArtifactError(AggregationError):
    """Raised for a missing, empty or unreadable trace artifact."""


class ExecutionFailedError(Exception):
    """Raised when a wrapped execution exits non-zero."""

    def __init__(self, context: str, returncode: int, output_tail: str = "") -> None:
        super().__init__(f"Execution context '{context}' exited with status {returncode}")
        self.context = context
        self.returncode = returncode
        self.output_tail = output_tail
