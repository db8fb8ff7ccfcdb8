"""Reconcile a packaged resource directory against its source of truth."""

from __future__ import annotations

import fnmatch
from pathlib import Path

from build_orchestrator.config import ResourcesConfig
from build_orchestrator.resources.filesystem import FileSystem, LocalFileSystem
from build_orchestrator.resources.models import AssetRecord, SyncPlan, SyncResult
from build_orchestrator.security import resolve_managed_path


class SyncError(Exception):
    """Raised when synchronization cannot read its source or write its destination."""

    def __init__(self, reason: str, path: Path) -> None:
        super().__init__(f"{reason}: {path}")
        self.reason = reason
        self.path = path


def is_qualifying_asset(name: str, include_globs: tuple[str, ...], manifest_name: str) -> bool:
    """Return True when a bare file name is managed by the include filter."""
    if name == manifest_name:
        return False
    return any(fnmatch.fnmatch(name, pattern) for pattern in include_globs)


def plan_sync(source: dict[str, AssetRecord], destination: dict[str, AssetRecord]) -> SyncPlan:
    """Compute deterministic added/updated/unchanged/removed name sets."""
    source_names = set(source.keys())
    destination_names = set(destination.keys())

    updated: list[str] = []
    unchanged: list[str] = []
    for name in sorted(source_names & destination_names):
        if source[name].content_hash == destination[name].content_hash:
            unchanged.append(name)
            continue
        updated.append(name)

    return SyncPlan(
        added=tuple(sorted(source_names - destination_names)),
        updated=tuple(updated),
        unchanged=tuple(unchanged),
        removed=tuple(sorted(destination_names - source_names)),
    )


class ResourceSynchronizer:
    """Mirrors qualifying source assets into the packaged directory."""

    def __init__(self, config: ResourcesConfig, filesystem: FileSystem | None = None) -> None:
        self._config = config
        self._fs: FileSystem = filesystem or LocalFileSystem()

    @property
    def config(self) -> ResourcesConfig:
        return self._config

    def scan(self, directory: Path) -> dict[str, AssetRecord]:
        """Map qualifying asset names in a flat directory to their records."""
        records: dict[str, AssetRecord] = {}
        for name in self._fs.list_files(directory):
            if not is_qualifying_asset(
                name, self._config.include_globs, self._config.manifest_name
            ):
                continue
            path = directory / name
            stat = self._fs.stat(path)
            records[name] = AssetRecord(
                name=name,
                size=stat.size,
                mtime_ns=stat.mtime_ns,
                content_hash=self._fs.digest(path),
            )
        return records

    def plan(self) -> SyncPlan:
        """Compare source and packaged directories without writing anything."""
        source_dir = self._config.source_dir
        packaged_dir = self._config.packaged_dir
        if not self._fs.exists(source_dir):
            raise SyncError("Source directory does not exist", source_dir)
        try:
            source = self.scan(source_dir)
        except OSError as exc:
            raise SyncError("Source directory is not readable", source_dir) from exc
        destination: dict[str, AssetRecord] = {}
        if self._fs.exists(packaged_dir):
            try:
                destination = self.scan(packaged_dir)
            except OSError as exc:
                raise SyncError("Packaged directory is not readable", packaged_dir) from exc
        return plan_sync(source, destination)

    def sync(self) -> SyncResult:
        """Apply the reconciliation plan; rerunning always converges."""
        plan = self.plan()
        source_dir = self._config.source_dir
        packaged_dir = self._config.packaged_dir
        try:
            self._fs.ensure_dir(packaged_dir)
        except OSError as exc:
            raise SyncError("Packaged directory cannot be created", packaged_dir) from exc
        if plan.is_noop:
            return SyncResult(source_dir=source_dir, packaged_dir=packaged_dir, plan=plan)

        for name in (*plan.added, *plan.updated):
            target = resolve_managed_path(packaged_dir, name)
            try:
                data = self._fs.read_bytes(source_dir / name)
            except OSError as exc:
                raise SyncError("Source asset is not readable", source_dir / name) from exc
            try:
                self._fs.write_bytes_atomic(target, data)
            except OSError as exc:
                raise SyncError("Packaged asset cannot be written", target) from exc

        for name in plan.removed:
            target = resolve_managed_path(packaged_dir, name)
            try:
                self._fs.delete(target)
            except OSError as exc:
                raise SyncError("Stale packaged asset cannot be deleted", target) from exc

        return SyncResult(source_dir=source_dir, packaged_dir=packaged_dir, plan=plan)
