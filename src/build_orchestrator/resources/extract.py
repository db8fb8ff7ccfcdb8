"""Extract packaged assets into a runtime directory using the manifest."""

from __future__ import annotations

import shutil
from pathlib import Path

from build_orchestrator.config import DEFAULT_MANIFEST_NAME
from build_orchestrator.resources.manifest import read_manifest
from build_orchestrator.resources.models import ExtractResult
from build_orchestrator.security import resolve_managed_path


class AssetNotFoundError(Exception):
    """Raised when the manifest lists an asset the packaged directory lacks."""

    def __init__(self, name: str, packaged_dir: Path) -> None:
        super().__init__(f"Asset listed in manifest not found: {name}")
        self.name = name
        self.packaged_dir = packaged_dir


def extract_assets(
    packaged_dir: Path,
    target_dir: Path,
    *,
    manifest_name: str = DEFAULT_MANIFEST_NAME,
    overwrite: bool = False,
) -> ExtractResult:
    """Copy every manifest-listed asset into target_dir.

    With ``overwrite`` the target directory is cleared first, so stale
    files from an earlier extraction do not survive. Without it, files
    already present in the target are kept as they are.
    """
    resolved_packaged = packaged_dir.resolve()
    resolved_target = target_dir.resolve()
    # Clearing or writing into the target must never touch the packaged assets.
    if resolved_packaged.is_relative_to(resolved_target):
        raise ValueError("Extraction target must not be or contain the packaged directory.")
    names = read_manifest(packaged_dir / manifest_name)
    if overwrite and target_dir.exists():
        shutil.rmtree(target_dir)
    target_dir.mkdir(parents=True, exist_ok=True)

    extracted: list[str] = []
    skipped: list[str] = []
    for name in names:
        source = resolve_managed_path(packaged_dir, name)
        destination = resolve_managed_path(target_dir, name)
        if destination.exists() and not overwrite:
            skipped.append(name)
            continue
        if not source.is_file():
            raise AssetNotFoundError(name, packaged_dir)
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, destination)
        extracted.append(name)
    return ExtractResult(
        target_dir=target_dir,
        extracted=tuple(extracted),
        skipped=tuple(skipped),
    )
