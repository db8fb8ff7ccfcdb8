"""Path safety primitives for managed directories."""

from .paths import PathBlockedError, resolve_managed_path

__all__ = ["PathBlockedError", "resolve_managed_path"]
