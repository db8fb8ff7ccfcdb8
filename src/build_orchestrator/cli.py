"""Command-line entrypoint for resource and coverage pipelines."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import TextIO

from build_orchestrator.config import CliOverrides, OrchestratorConfig, load_effective_config
from build_orchestrator.pipeline import CoveragePipeline, ResourcePipeline, error_code_for
from build_orchestrator.security import PathBlockedError
from build_orchestrator.traces import ExecutionFailedError


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for pipeline commands."""
    parser = argparse.ArgumentParser(prog="build-orchestrator")
    parser.add_argument("--project-root", required=False, default=".")
    parser.add_argument("--data-dir", required=False, default=None)
    parser.add_argument("--source-dir", required=False, default=None)
    parser.add_argument("--packaged-dir", required=False, default=None)
    parser.add_argument("--source-root", required=False, default=None)
    parser.add_argument("--build-dir", required=False, default=None)
    parser.add_argument("--report-dir", required=False, default=None)
    parser.add_argument("--branch", choices=("true", "false"), required=False, default=None)
    parser.add_argument("--app-module", required=False, default=None)

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("config", help="Print the effective configuration.")
    commands.add_parser("sync", help="Sync packaged assets and regenerate the manifest.")
    commands.add_parser("manifest", help="Regenerate the manifest only.")

    extract = commands.add_parser("extract", help="Extract manifest-listed assets.")
    extract.add_argument("--target", required=True)
    extract.add_argument("--overwrite", action="store_true")

    collect = commands.add_parser("collect", help="Run execution contexts under coverage.")
    collect.add_argument("--context", action="append", dest="contexts", default=None)

    aggregate = commands.add_parser("aggregate", help="Merge existing trace artifacts.")
    aggregate.add_argument("traces", nargs="+")
    aggregate.add_argument("--html", action="store_true")

    coverage = commands.add_parser("coverage", help="Collect, merge and render coverage.")
    coverage.add_argument("--context", action="append", dest="contexts", default=None)
    coverage.add_argument("--no-html", action="store_true")
    return parser


def overrides_from_args(args: argparse.Namespace) -> CliOverrides:
    def as_path(value: str | None) -> Path | None:
        return Path(value) if value is not None else None

    branch: bool | None = None
    if args.branch == "true":
        branch = True
    if args.branch == "false":
        branch = False
    return CliOverrides(
        data_dir=as_path(args.data_dir),
        source_dir=as_path(args.source_dir),
        packaged_dir=as_path(args.packaged_dir),
        source_root=as_path(args.source_root),
        build_dir=as_path(args.build_dir),
        report_dir=as_path(args.report_dir),
        branch=branch,
        app_module=args.app_module,
    )


def run_command(config: OrchestratorConfig, args: argparse.Namespace) -> dict[str, object]:
    """Dispatch one parsed command and return its JSON-ready result."""
    if args.command == "config":
        return {"effective_config": config.to_public_dict()}
    if args.command == "sync":
        return ResourcePipeline(config).run()
    if args.command == "manifest":
        return ResourcePipeline(config).generate_manifest()
    if args.command == "extract":
        return ResourcePipeline(config).extract(Path(args.target).resolve(), args.overwrite)

    pipeline = CoveragePipeline(config)
    if args.command == "collect":
        traces = pipeline.collect(pipeline.select_contexts(args.contexts))
        return {"traces": [trace.to_dict() for trace in traces]}
    if args.command == "aggregate":
        paths = [Path(raw).resolve() for raw in args.traces]
        model = pipeline.aggregate(paths)
        return {"summary": model.summary(), "report": pipeline.export(model, render=args.html)}
    if args.command == "coverage":
        return pipeline.run(context_names=args.contexts, render=not args.no_html)
    raise ValueError(f"Unknown command: {args.command}")


def error_envelope(exc: Exception) -> dict[str, object]:
    """Build explicit error envelope."""
    error: dict[str, object] = {"code": error_code_for(exc), "message": str(exc)}
    if isinstance(exc, PathBlockedError):
        error["message"] = exc.reason
        error["hint"] = exc.hint
    if isinstance(exc, ExecutionFailedError) and exc.output_tail:
        error["output_tail"] = exc.output_tail
    return {"ok": False, "result": {}, "error": error}


def main(argv: list[str] | None = None, out_stream: TextIO | None = None) -> int:
    """Entrypoint for the build-orchestrator command."""
    stream = out_stream or sys.stdout
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    try:
        config = load_effective_config(
            project_root=Path(args.project_root), overrides=overrides_from_args(args)
        )
        result = run_command(config, args)
    except Exception as exc:
        if error_code_for(exc) == "INTERNAL_ERROR":
            raise
        stream.write(f"{json.dumps(error_envelope(exc), sort_keys=True)}\n")
        return 1
    stream.write(f"{json.dumps({'ok': True, 'result': result}, sort_keys=True)}\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
