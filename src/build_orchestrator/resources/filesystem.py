"""File-system seam used by resource reconciliation."""

from __future__ import annotations

import hashlib
import os
import tempfile
from pathlib import Path
from typing import Protocol

from build_orchestrator.resources.models import FileStat


class FileSystem(Protocol):
    """Minimal flat-directory operations needed by sync and manifest generation."""

    def exists(self, path: Path) -> bool: ...

    def list_files(self, directory: Path) -> list[str]: ...

    def stat(self, path: Path) -> FileStat: ...

    def digest(self, path: Path) -> str: ...

    def read_bytes(self, path: Path) -> bytes: ...

    def write_bytes_atomic(self, path: Path, data: bytes) -> None: ...

    def delete(self, path: Path) -> None: ...

    def ensure_dir(self, path: Path) -> None: ...


class LocalFileSystem:
    """FileSystem backed by the real disk."""

    def exists(self, path: Path) -> bool:
        return path.exists()

    def list_files(self, directory: Path) -> list[str]:
        """Return sorted bare names of regular files directly under directory."""
        with os.scandir(directory) as entries:
            names = [entry.name for entry in entries if entry.is_file()]
        names.sort()
        return names

    def stat(self, path: Path) -> FileStat:
        result = path.stat()
        return FileStat(size=result.st_size, mtime_ns=result.st_mtime_ns)

    def digest(self, path: Path) -> str:
        return sha256_file(path)

    def read_bytes(self, path: Path) -> bytes:
        return path.read_bytes()

    def write_bytes_atomic(self, path: Path, data: bytes) -> None:
        """Write to a unique sibling temp file, then rename over the target."""
        handle = tempfile.NamedTemporaryFile(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
        )
        tmp = Path(handle.name)
        try:
            with handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            tmp.replace(path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise

    def delete(self, path: Path) -> None:
        path.unlink(missing_ok=True)

    def ensure_dir(self, path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)


def sha256_file(path: Path) -> str:
    """Compute SHA-256 hash in deterministic chunked reads."""
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        while True:
            chunk = handle.read(1024 * 128)
            if not chunk:
                break
            digest.update(chunk)
    return digest.hexdigest()
