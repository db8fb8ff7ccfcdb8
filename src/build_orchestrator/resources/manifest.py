"""Generate and parse the packaged asset manifest."""

from __future__ import annotations

from pathlib import Path

from build_orchestrator.config import ResourcesConfig
from build_orchestrator.resources.filesystem import FileSystem, LocalFileSystem
from build_orchestrator.resources.models import Manifest
from build_orchestrator.resources.sync import is_qualifying_asset


class ManifestWriteError(Exception):
    """Raised when the manifest cannot be published; the previous one stays intact."""

    def __init__(self, reason: str, path: Path) -> None:
        super().__init__(f"{reason}: {path}")
        self.reason = reason
        self.path = path


class ManifestNotFoundError(Exception):
    """Raised when a packaged directory carries no manifest."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Manifest file not found: {path}")
        self.path = path


class ManifestGenerator:
    """Writes the sorted list of packaged assets as a whole-file replacement."""

    def __init__(self, config: ResourcesConfig, filesystem: FileSystem | None = None) -> None:
        self._config = config
        self._fs: FileSystem = filesystem or LocalFileSystem()

    @property
    def manifest_path(self) -> Path:
        return self._config.packaged_dir / self._config.manifest_name

    def collect(self) -> tuple[str, ...]:
        """Return sorted qualifying asset names currently in the packaged directory."""
        names = [
            name
            for name in self._fs.list_files(self._config.packaged_dir)
            if is_qualifying_asset(name, self._config.include_globs, self._config.manifest_name)
        ]
        return tuple(sorted(names))

    def generate(self) -> Manifest:
        """Rebuild the manifest from the directory state at this moment."""
        packaged_dir = self._config.packaged_dir
        try:
            entries = self.collect()
        except OSError as exc:
            raise ManifestWriteError("Packaged directory is not readable", packaged_dir) from exc
        manifest = Manifest(path=self.manifest_path, entries=entries)
        try:
            self._fs.write_bytes_atomic(manifest.path, manifest.render().encode("utf-8"))
        except OSError as exc:
            raise ManifestWriteError("Manifest cannot be written", manifest.path) from exc
        return manifest


def parse_manifest(text: str) -> tuple[str, ...]:
    """Parse manifest text, skipping blank lines and '#' comments."""
    entries: list[str] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        entries.append(line)
    return tuple(entries)


def read_manifest(path: Path) -> tuple[str, ...]:
    """Read asset names from an on-disk manifest in listed order."""
    if not path.is_file():
        raise ManifestNotFoundError(path)
    return parse_manifest(path.read_text(encoding="utf-8"))
