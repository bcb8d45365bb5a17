#!/usr/bin/env python3
"""Filter pipeline for chaining file selection stages.

This module provides pipeline execution for filters:
- Sequential stage chaining, each stage seeing only earlier survivors
- Conditional stage application via should_apply()
- Error handling with graceful degradation when a reporter is attached
- Early exit once no files remain
- Pipeline statistics

Example:
    >>> pipeline = FilterPipeline(reporter=get_logger())
    >>> pipeline.add_filter(ruleset)
    >>> pipeline.add_filter(ModifiedFilter("/srv/app"))
    >>> files = pipeline.execute([])
"""

from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from treepick.core.logging import Logger, get_logger
from treepick.filters.base import FileEntry, FileFilter, FilterError


class FilterPipeline:
    """Pipeline for chaining multiple file filters.

    Features:
    - Stages run in the order they were added
    - Stages whose should_apply() is false are skipped
    - A failing stage is logged and bypassed when a reporter is attached,
      otherwise FilterError is raised
    - Stops as soon as the file list is empty
    """

    def __init__(self, reporter: Optional[Logger] = None):
        """Initialize filter pipeline.

        Args:
            reporter: Logger that reports progress and absorbs stage errors.
                Without one, stage errors are raised as FilterError.
        """
        self._filters: List[FileFilter] = []
        self._context: Mapping[str, Any] = MappingProxyType({})
        self.reporter = reporter
        self._logger = reporter or get_logger()
        self._stats = self._empty_stats()

    @staticmethod
    def _empty_stats() -> Dict[str, int]:
        return {
            "total_runs": 0,
            "stages_run": 0,
            "stages_failed": 0,
            "files_removed": 0,
        }

    def add_filter(self, file_filter: FileFilter) -> "FilterPipeline":
        """Add a stage to the pipeline.

        Stages are executed in the order they are added.

        Args:
            file_filter: Stage to add

        Returns:
            self, for chaining
        """
        self._filters.append(file_filter)
        return self

    def set_context(self, context: Mapping[str, Any]) -> "FilterPipeline":
        """Set the context passed to every stage.

        Stages receive a read-only view of a copy of this mapping.
        """
        self._context = MappingProxyType(dict(context))
        return self

    @property
    def context(self) -> Mapping[str, Any]:
        return self._context

    def execute(self, files: List[FileEntry]) -> List[FileEntry]:
        """Run all active stages over a file list.

        Args:
            files: Initial files; a ruleset stage scans its base path when
                this is empty

        Returns:
            Files that survived every stage

        Raises:
            FilterError: If a stage fails and no reporter is attached
        """
        self._stats["total_runs"] += 1

        active = [f for f in self._filters if f.should_apply(self._context)]
        if not active:
            self._logger.debug("No active filters in pipeline")
            return files

        current = list(files)
        for file_filter in active:
            with self._logger.add_context(stage=file_filter.name):
                current = self._run_stage(file_filter, current)

            if not current:
                self._logger.info("No files remaining after filter, stopping pipeline")
                break

        return current

    def _run_stage(self, file_filter: FileFilter, files: List[FileEntry]) -> List[FileEntry]:
        description = file_filter.describe()
        self._logger.info("Applying filter", filter=description)

        try:
            result = list(file_filter.filter(files, self._context))
        except Exception as e:
            self._stats["stages_failed"] += 1
            self._handle_error(file_filter, description, e)
            return files

        self._stats["stages_run"] += 1
        removed = len(files) - len(result)
        if removed > 0:
            self._stats["files_removed"] += removed
            self._logger.debug("Filter removed files", removed=removed, remaining=len(result))
        return result

    def _handle_error(self, file_filter: FileFilter, description: str, error: Exception) -> None:
        message = f"Filter failed: {description}: {error}"

        if self.reporter is None:
            raise FilterError(message, file_filter.name) from error

        self.reporter.exception(message, error)
        self.reporter.warning("Continuing with unfiltered results")

    def get_filters(self) -> List[FileFilter]:
        """Get all stages in the pipeline.

        Returns:
            List of stages (copy)
        """
        return self._filters.copy()

    def get_filter_descriptions(self) -> List[str]:
        return [f.describe() for f in self._filters]

    def has_filters(self) -> bool:
        return bool(self._filters)

    def get_stats(self) -> Dict[str, Any]:
        """Get pipeline statistics.

        Returns:
            Statistics dictionary
        """
        stats: Dict[str, Any] = dict(self._stats)
        stats["filters"] = len(self._filters)
        return stats

    def reset_stats(self) -> None:
        """Reset all statistics."""
        self._stats = self._empty_stats()

    def __len__(self) -> int:
        """Return number of stages in pipeline."""
        return len(self._filters)

    def __repr__(self) -> str:
        """String representation."""
        return f"<FilterPipeline filters={[f.name for f in self._filters]}>"
