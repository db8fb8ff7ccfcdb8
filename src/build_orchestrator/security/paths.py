"""Path resolution helpers that keep writes inside a managed directory."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Final

WINDOWS_ABSOLUTE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-zA-Z]:[\\/]")


class PathBlockedError(Exception):
    """Raised when an asset name would resolve outside its managed directory."""

    def __init__(self, reason: str, hint: str) -> None:
        super().__init__(reason)
        self.reason = reason
        self.hint = hint


def resolve_managed_path(root: Path, name: str) -> Path:
    """Resolve a bare asset name against a managed directory root."""
    normalized = name.replace("\\", "/")
    if not normalized.strip():
        raise PathBlockedError(
            reason="Asset name is empty.",
            hint="Provide a bare file name such as 'init.lua'.",
        )
    if normalized.startswith("/") or WINDOWS_ABSOLUTE_PATTERN.match(normalized):
        raise PathBlockedError(
            reason="Absolute asset names are blocked.",
            hint="Asset names must be relative to the managed directory.",
        )
    parts = [part for part in normalized.split("/") if part not in ("", ".")]
    if any(part == ".." for part in parts):
        raise PathBlockedError(
            reason="Path traversal is blocked.",
            hint="Remove '..' segments from the asset name.",
        )
    resolved_root = root.resolve()
    resolved = (resolved_root / Path(*parts)).resolve(strict=False)
    if not resolved.is_relative_to(resolved_root):
        raise PathBlockedError(
            reason="Resolved path escapes the managed directory.",
            hint="Check for symlinks pointing outside the managed directory.",
        )
    return resolved
