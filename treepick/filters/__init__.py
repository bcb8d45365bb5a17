"""TreePick Filters.

This module provides the file selection stages and their pipeline:
- FileFilter / FileEntry: stage interface and the file records it passes on
- RulesetFilter: rule-based selection over a directory tree
- ModifiedFilter / ChangeFilter: git-based narrowing
- FilterPipeline / create_pipeline: ordered stage execution
"""

from .base import FileEntry, FileFilter, FilterError
from .factory import FilterOptions, create_pipeline
from .git import ChangeFilter, GitError, GitStatusChecker, ModifiedFilter
from .pipeline import FilterPipeline
from .ruleset import RulesetError, RulesetFilter

__all__ = [
    # Base
    "FileEntry",
    "FileFilter",
    "FilterError",
    # Ruleset
    "RulesetFilter",
    "RulesetError",
    # Git
    "GitError",
    "GitStatusChecker",
    "ModifiedFilter",
    "ChangeFilter",
    # Pipeline
    "FilterPipeline",
    "FilterOptions",
    "create_pipeline",
]
