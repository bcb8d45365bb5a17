#!/usr/bin/env python3
"""Base classes for file filters.

This module provides the foundation for all pipeline stages:
- FileEntry: a selected file as (relative path, absolute path)
- FileFilter abstract base class
- FilterError for error handling

Example:
    >>> class MarkdownOnly(FileFilter):
    ...     def filter(self, files, context):
    ...         return [f for f in files if f.path.endswith(".md")]
    ...
    ...     def describe(self):
    ...         return "Markdown files only"
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Mapping, Optional

from treepick.core.constants import ErrorCode


@dataclass(frozen=True)
class FileEntry:
    """A file selected from the tree.

    Attributes:
        path: Forward-slash path relative to the scanned base path
        file: Absolute path to the file on disk
    """

    path: str
    file: Path


class FilterError(Exception):
    """A filter stage failed."""

    def __init__(
        self,
        message: str,
        filter_name: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
    ):
        self.message = message
        self.filter_name = filter_name
        self.error_code = error_code
        super().__init__(message)


class FileFilter(ABC):
    """Abstract base class for pipeline stages.

    All filters must implement:
    - filter(): Narrow a list of files
    - describe(): One-line human description

    Optional overrides:
    - should_apply(): Skip the stage for a given context
    """

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @abstractmethod
    def filter(self, files: List[FileEntry], context: Mapping[str, Any]) -> List[FileEntry]:
        """Filter files.

        Args:
            files: Files that survived earlier stages
            context: Read-only pipeline context

        Returns:
            Files this stage keeps

        Raises:
            FilterError: If filtering fails
        """

    def should_apply(self, context: Mapping[str, Any]) -> bool:
        """Check if this stage should run for the given context.

        Args:
            context: Read-only pipeline context

        Returns:
            True if the stage should run
        """
        return True

    @abstractmethod
    def describe(self) -> str:
        """Get a human-readable description of this stage."""

    def __repr__(self) -> str:
        return f"<{self.name}: {self.describe()}>"
