"""Packaged resource synchronization and manifest publishing."""

from .extract import AssetNotFoundError, extract_assets
from .filesystem import FileSystem, LocalFileSystem, sha256_file
from .manifest import (
    ManifestGenerator,
    ManifestNotFoundError,
    ManifestWriteError,
    parse_manifest,
    read_manifest,
)
from .models import AssetRecord, ExtractResult, FileStat, Manifest, SyncPlan, SyncResult
from .sync import ResourceSynchronizer, SyncError, is_qualifying_asset, plan_sync

__all__ = [
    "AssetNotFoundError",
    "AssetRecord",
    "ExtractResult",
    "FileStat",
    "FileSystem",
    "LocalFileSystem",
    "Manifest",
    "ManifestGenerator",
    "ManifestNotFoundError",
    "ManifestWriteError",
    "ResourceSynchronizer",
    "SyncError",
    "SyncPlan",
    "SyncResult",
    "extract_assets",
    "is_qualifying_asset",
    "parse_manifest",
    "plan_sync",
    "read_manifest",
    "sha256_file",
]
