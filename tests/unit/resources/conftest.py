from __future__ import annotations

import hashlib
from pathlib import Path

import pytest

from build_orchestrator.config import ResourcesConfig
from build_orchestrator.resources import FileStat

SOURCE_DIR = Path("/virtual/core/randomizer")
PACKAGED_DIR = Path("/virtual/lib/resources/randomizer")


class MemoryFileSystem:
    """In-memory flat FileSystem that records every mutation."""

    def __init__(self) -> None:
        self.files: dict[Path, bytes] = {}
        self.mtimes: dict[Path, int] = {}
        self.dirs: set[Path] = set()
        self.writes: list[Path] = []
        self.deletes: list[Path] = []
        self.failing_writes: set[Path] = set()
        self._clock = 0

    def put(self, path: Path, data: bytes | str) -> None:
        payload = data.encode("utf-8") if isinstance(data, str) else data
        self.dirs.add(path.parent)
        self.files[path] = payload
        self._clock += 1
        self.mtimes[path] = self._clock

    def snapshot(self, directory: Path) -> dict[str, bytes]:
        return {
            path.name: data for path, data in sorted(self.files.items()) if path.parent == directory
        }

    def exists(self, path: Path) -> bool:
        return path in self.files or path in self.dirs

    def list_files(self, directory: Path) -> list[str]:
        if directory not in self.dirs:
            raise FileNotFoundError(str(directory))
        return sorted(path.name for path in self.files if path.parent == directory)

    def stat(self, path: Path) -> FileStat:
        return FileStat(size=len(self.files[path]), mtime_ns=self.mtimes[path])

    def digest(self, path: Path) -> str:
        return hashlib.sha256(self.read_bytes(path)).hexdigest()

    def read_bytes(self, path: Path) -> bytes:
        if path not in self.files:
            raise FileNotFoundError(str(path))
        return self.files[path]

    def write_bytes_atomic(self, path: Path, data: bytes) -> None:
        if path in self.failing_writes:
            raise PermissionError(str(path))
        if path.parent not in self.dirs:
            raise FileNotFoundError(str(path.parent))
        self.writes.append(path)
        self.put(path, data)

    def delete(self, path: Path) -> None:
        self.deletes.append(path)
        self.files.pop(path, None)
        self.mtimes.pop(path, None)

    def ensure_dir(self, path: Path) -> None:
        self.dirs.add(path)


@pytest.fixture
def memory_fs() -> MemoryFileSystem:
    return MemoryFileSystem()


@pytest.fixture
def resources_config() -> ResourcesConfig:
    return ResourcesConfig(source_dir=SOURCE_DIR, packaged_dir=PACKAGED_DIR)
