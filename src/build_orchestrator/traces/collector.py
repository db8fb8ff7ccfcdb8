"""Run execution contexts under coverage.py so each leaves its own trace."""

from __future__ import annotations

import os
import subprocess
import sys
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from build_orchestrator.config import CoverageConfig
from build_orchestrator.traces.errors import ExecutionFailedError, TraceArtifactError
from build_orchestrator.traces.models import ExecutionContext, TraceArtifact

ProcessRunner = Callable[..., subprocess.CompletedProcess[str]]

TRACE_SUFFIX = ".coverage"


def run_process(
    command: list[str], *, cwd: Path | None, env: dict[str, str]
) -> subprocess.CompletedProcess[str]:
    """Default runner: blocking subprocess with captured output."""
    return subprocess.run(
        command,
        cwd=cwd,
        env=env,
        check=False,
        capture_output=True,
        text=True,
    )


class CoverageCollector:
    """Wraps one external process per execution context."""

    def __init__(
        self,
        config: CoverageConfig,
        runner: ProcessRunner | None = None,
        python_executable: str | None = None,
    ) -> None:
        self._config = config
        self._runner = runner or run_process
        self._python = python_executable or sys.executable

    def trace_path(self, context: ExecutionContext) -> Path:
        """Return the per-context trace location under the build directory."""
        return self._config.trace_dir / f"{context.name}{TRACE_SUFFIX}"

    def build_command(self, context: ExecutionContext) -> list[str]:
        command = [
            self._python,
            "-m",
            "coverage",
            "run",
            f"--source={self._config.source_root}",
        ]
        if self._config.branch:
            command.append("--branch")
        command.extend(context.target_args())
        return command

    def collect(self, context: ExecutionContext) -> TraceArtifact:
        """Run one context and return the single trace artifact it produced."""
        trace = self.trace_path(context)
        trace.parent.mkdir(parents=True, exist_ok=True)
        # A leftover trace from an earlier run must not stand in for this one.
        trace.unlink(missing_ok=True)

        env = os.environ.copy()
        env["COVERAGE_FILE"] = str(trace)
        completed = self._runner(
            self.build_command(context),
            cwd=context.working_dir,
            env=env,
        )
        if completed.returncode != 0:
            raise ExecutionFailedError(
                context=context.name,
                returncode=completed.returncode,
                output_tail=_tail(completed.stderr or completed.stdout or ""),
            )
        if not trace.is_file():
            raise TraceArtifactError("Execution produced no trace artifact", trace)
        return TraceArtifact(context=context.name, kind=context.kind, path=trace)

    def collect_all(
        self,
        contexts: Sequence[ExecutionContext],
        max_workers: int | None = None,
    ) -> list[TraceArtifact]:
        """Run independent contexts in parallel; results follow input order."""
        if not contexts:
            raise ValueError("At least one execution context is required.")
        paths = [self.trace_path(context) for context in contexts]
        if len(set(paths)) != len(paths):
            raise ValueError("Execution contexts must write distinct trace artifacts.")
        workers = max_workers or len(contexts)
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(self.collect, context) for context in contexts]
            return [future.result() for future in futures]


def _tail(text: str, max_lines: int = 20) -> str:
    lines = text.strip().splitlines()
    return "\n".join(lines[-max_lines:])
