"""Typed models for packaged resource state."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(slots=True, frozen=True)
class FileStat:
    """Size and modification time of one file."""

    size: int
    mtime_ns: int


@dataclass(slots=True, frozen=True)
class AssetRecord:
    """Represents one qualifying asset as seen in a directory."""

    name: str
    size: int
    mtime_ns: int
    content_hash: str


@dataclass(slots=True, frozen=True)
class SyncPlan:
    """Deterministic reconciliation of source assets against packaged assets."""

    added: tuple[str, ...]
    updated: tuple[str, ...]
    unchanged: tuple[str, ...]
    removed: tuple[str, ...]

    @property
    def is_noop(self) -> bool:
        return not (self.added or self.updated or self.removed)


@dataclass(slots=True, frozen=True)
class SyncResult:
    """Outcome of one applied synchronization."""

    source_dir: Path
    packaged_dir: Path
    plan: SyncPlan

    def to_dict(self) -> dict[str, object]:
        return {
            "source_dir": str(self.source_dir),
            "packaged_dir": str(self.packaged_dir),
            "added": list(self.plan.added),
            "updated": list(self.plan.updated),
            "removed": list(self.plan.removed),
            "unchanged_count": len(self.plan.unchanged),
        }


@dataclass(slots=True, frozen=True)
class Manifest:
    """Ordered asset names published next to the assets they describe."""

    path: Path
    entries: tuple[str, ...]

    def render(self) -> str:
        """Return the exact on-disk manifest text."""
        return "\n".join(self.entries)


@dataclass(slots=True, frozen=True)
class ExtractResult:
    """Outcome of extracting packaged assets into a runtime directory."""

    target_dir: Path
    extracted: tuple[str, ...]
    skipped: tuple[str, ...]
