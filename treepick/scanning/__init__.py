"""TreePick Scanning - directory traversal feeding the ruleset filter."""

from .iterator import FilteredDirIterator

__all__ = ["FilteredDirIterator"]
