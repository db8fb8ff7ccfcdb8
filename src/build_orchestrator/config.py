"""Configuration loading and deterministic merge order."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

CONFIG_FILE_NAME = "build_orchestrator.toml"

DEFAULT_SOURCE_DIR = "UniversalRandomizerCore/randomizer"
DEFAULT_PACKAGED_DIR = "src/resources/randomizer"
DEFAULT_INCLUDE_GLOBS = ("*.lua",)
DEFAULT_MANIFEST_NAME = ".manifest"

DEFAULT_SOURCE_ROOT = "src"
DEFAULT_BUILD_DIR = "build"
DEFAULT_REPORT_DIR = "coverage/combined"
DEFAULT_EXCLUDE_GLOBS = ("**/support/**", "**/logger/**")
DEFAULT_TEST_ARGS = ("tests",)


@dataclass(slots=True, frozen=True)
class ResourcesConfig:
    """Resource synchronization and manifest settings."""

    source_dir: Path
    packaged_dir: Path
    include_globs: tuple[str, ...] = DEFAULT_INCLUDE_GLOBS
    manifest_name: str = DEFAULT_MANIFEST_NAME


@dataclass(slots=True, frozen=True)
class CoverageConfig:
    """Coverage collection and aggregation settings."""

    source_root: Path
    build_dir: Path
    report_dir: Path
    exclude_globs: tuple[str, ...] = DEFAULT_EXCLUDE_GLOBS
    branch: bool = False
    test_args: tuple[str, ...] = DEFAULT_TEST_ARGS
    app_module: str | None = None
    app_args: tuple[str, ...] = ()
    app_working_dir: Path | None = None

    @property
    def trace_dir(self) -> Path:
        """Return the directory holding per-context trace artifacts."""
        return self.build_dir / "coverage"


@dataclass(slots=True, frozen=True)
class OrchestratorConfig:
    """Fully merged orchestrator configuration."""

    project_root: Path
    data_dir: Path
    resources: ResourcesConfig
    coverage: CoverageConfig

    def to_public_dict(self) -> dict[str, object]:
        """Return serializable config snapshot for command output."""
        return {
            "project_root": str(self.project_root),
            "data_dir": str(self.data_dir),
            "resources": {
                "source_dir": str(self.resources.source_dir),
                "packaged_dir": str(self.resources.packaged_dir),
                "include_globs": list(self.resources.include_globs),
                "manifest_name": self.resources.manifest_name,
            },
            "coverage": {
                "source_root": str(self.coverage.source_root),
                "build_dir": str(self.coverage.build_dir),
                "report_dir": str(self.coverage.report_dir),
                "exclude_globs": list(self.coverage.exclude_globs),
                "branch": self.coverage.branch,
                "test_args": list(self.coverage.test_args),
                "app_module": self.coverage.app_module,
                "app_args": list(self.coverage.app_args),
                "app_working_dir": (
                    str(self.coverage.app_working_dir)
                    if self.coverage.app_working_dir is not None
                    else None
                ),
            },
        }


@dataclass(slots=True, frozen=True)
class CliOverrides:
    """Optional startup overrides applied at highest precedence."""

    data_dir: Path | None = None
    source_dir: Path | None = None
    packaged_dir: Path | None = None
    source_root: Path | None = None
    build_dir: Path | None = None
    report_dir: Path | None = None
    branch: bool | None = None
    app_module: str | None = None


def default_config(project_root: Path) -> OrchestratorConfig:
    """Build default config for a given project root."""
    root = project_root.resolve()
    return OrchestratorConfig(
        project_root=root,
        data_dir=root / ".build_orchestrator",
        resources=ResourcesConfig(
            source_dir=root / DEFAULT_SOURCE_DIR,
            packaged_dir=root / DEFAULT_PACKAGED_DIR,
        ),
        coverage=CoverageConfig(
            source_root=root / DEFAULT_SOURCE_ROOT,
            build_dir=root / DEFAULT_BUILD_DIR,
            report_dir=root / DEFAULT_REPORT_DIR,
        ),
    )


def load_project_config_file(project_root: Path) -> dict[str, object]:
    """Load optional build_orchestrator.toml from project root."""
    config_path = project_root / CONFIG_FILE_NAME
    if not config_path.exists():
        return {}
    with config_path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"{CONFIG_FILE_NAME} must contain a top-level table.")
    return payload


def _get_table(payload: dict[str, object], key: str) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a table.")
    return value


def _tuple_of_strings(value: object, section: str, field: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ValueError(f"Config field '{section}.{field}' must be a list of strings.")
    output: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"Config field '{section}.{field}' must contain only strings.")
        output.append(item)
    return tuple(output)


def _optional_path(
    table: dict[str, object], section: str, field: str, root: Path, default: Path
) -> Path:
    if field not in table:
        return default
    value = table[field]
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Config field '{section}.{field}' must be a non-empty string.")
    return _resolve_against(root, Path(value))


def _optional_bool(table: dict[str, object], section: str, field: str, default: bool) -> bool:
    if field not in table:
        return default
    value = table[field]
    if not isinstance(value, bool):
        raise ValueError(f"Config field '{section}.{field}' must be a boolean.")
    return value


def _resolve_against(root: Path, candidate: Path) -> Path:
    if candidate.is_absolute():
        return candidate.resolve()
    return (root / candidate).resolve()


def merge_config(
    base: OrchestratorConfig, project_payload: dict[str, object], overrides: CliOverrides
) -> OrchestratorConfig:
    """Merge defaults, project config, then CLI/startup overrides."""
    root = base.project_root
    resources_payload = _get_table(project_payload, "resources")
    coverage_payload = _get_table(project_payload, "coverage")

    include_globs = base.resources.include_globs
    if "include_globs" in resources_payload:
        include_globs = _tuple_of_strings(
            resources_payload["include_globs"], "resources", "include_globs"
        )
        if not include_globs:
            raise ValueError("Config field 'resources.include_globs' must not be empty.")

    manifest_name = base.resources.manifest_name
    if "manifest_name" in resources_payload:
        raw_manifest_name = resources_payload["manifest_name"]
        if not isinstance(raw_manifest_name, str) or not raw_manifest_name.strip():
            raise ValueError("Config field 'resources.manifest_name' must be a non-empty string.")
        if "/" in raw_manifest_name or "\\" in raw_manifest_name:
            raise ValueError("Config field 'resources.manifest_name' must be a bare file name.")
        manifest_name = raw_manifest_name

    resources = ResourcesConfig(
        source_dir=_optional_path(
            resources_payload, "resources", "source_dir", root, base.resources.source_dir
        ),
        packaged_dir=_optional_path(
            resources_payload, "resources", "packaged_dir", root, base.resources.packaged_dir
        ),
        include_globs=include_globs,
        manifest_name=manifest_name,
    )

    exclude_globs = base.coverage.exclude_globs
    if "exclude_globs" in coverage_payload:
        exclude_globs = _tuple_of_strings(
            coverage_payload["exclude_globs"], "coverage", "exclude_globs"
        )
    test_args = base.coverage.test_args
    if "test_args" in coverage_payload:
        test_args = _tuple_of_strings(coverage_payload["test_args"], "coverage", "test_args")
    app_args = base.coverage.app_args
    if "app_args" in coverage_payload:
        app_args = _tuple_of_strings(coverage_payload["app_args"], "coverage", "app_args")

    app_module = base.coverage.app_module
    if "app_module" in coverage_payload:
        raw_app_module = coverage_payload["app_module"]
        if not isinstance(raw_app_module, str) or not raw_app_module.strip():
            raise ValueError("Config field 'coverage.app_module' must be a non-empty string.")
        app_module = raw_app_module

    app_working_dir = base.coverage.app_working_dir
    if "app_working_dir" in coverage_payload:
        app_working_dir = _optional_path(
            coverage_payload, "coverage", "app_working_dir", root, root
        )

    coverage = CoverageConfig(
        source_root=_optional_path(
            coverage_payload, "coverage", "source_root", root, base.coverage.source_root
        ),
        build_dir=_optional_path(
            coverage_payload, "coverage", "build_dir", root, base.coverage.build_dir
        ),
        report_dir=_optional_path(
            coverage_payload, "coverage", "report_dir", root, base.coverage.report_dir
        ),
        exclude_globs=exclude_globs,
        branch=_optional_bool(coverage_payload, "coverage", "branch", base.coverage.branch),
        test_args=test_args,
        app_module=app_module,
        app_args=app_args,
        app_working_dir=app_working_dir,
    )

    merged = OrchestratorConfig(
        project_root=root,
        data_dir=base.data_dir,
        resources=resources,
        coverage=coverage,
    )
    return apply_cli_overrides(merged, overrides)


def apply_cli_overrides(config: OrchestratorConfig, overrides: CliOverrides) -> OrchestratorConfig:
    """Apply startup overrides at highest precedence."""
    root = config.project_root

    def pick(value: Path | None, current: Path) -> Path:
        if value is None:
            return current
        return _resolve_against(root, value)

    resources = ResourcesConfig(
        source_dir=pick(overrides.source_dir, config.resources.source_dir),
        packaged_dir=pick(overrides.packaged_dir, config.resources.packaged_dir),
        include_globs=config.resources.include_globs,
        manifest_name=config.resources.manifest_name,
    )
    coverage = CoverageConfig(
        source_root=pick(overrides.source_root, config.coverage.source_root),
        build_dir=pick(overrides.build_dir, config.coverage.build_dir),
        report_dir=pick(overrides.report_dir, config.coverage.report_dir),
        exclude_globs=config.coverage.exclude_globs,
        branch=overrides.branch if overrides.branch is not None else config.coverage.branch,
        test_args=config.coverage.test_args,
        app_module=overrides.app_module or config.coverage.app_module,
        app_args=config.coverage.app_args,
        app_working_dir=config.coverage.app_working_dir,
    )
    return OrchestratorConfig(
        project_root=root,
        data_dir=pick(overrides.data_dir, config.data_dir),
        resources=resources,
        coverage=coverage,
    )


def load_effective_config(
    project_root: Path, overrides: CliOverrides | None = None
) -> OrchestratorConfig:
    """Load effective config using merge order defaults -> project config -> overrides."""
    resolved_root = project_root.resolve()
    base = default_config(resolved_root)
    payload = load_project_config_file(resolved_root)
    return merge_config(base, payload, overrides or CliOverrides())
