"""
TreePick Filters: Pipeline Factory.

Builds a FilterPipeline from selection options. Stage order is fixed:
ruleset first, then at most one git stage, then externally supplied
stages (e.g. semantic filters) in the order given.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from treepick.core.constants import ErrorCode
from treepick.core.logging import Logger
from treepick.filters.base import FileFilter, FilterError
from treepick.filters.git import ChangeFilter, GitError, ModifiedFilter
from treepick.filters.pipeline import FilterPipeline
from treepick.filters.ruleset import RulesetFilter


@dataclass
class FilterOptions:
    """Options selecting the secondary pipeline stages.

    Attributes:
        modified: Keep only files modified since the last commit
        changes: Commit range "from:to" (``to`` defaults to HEAD)
        ai_filters: Extra stages appended after the git stage
    """

    modified: bool = False
    changes: Optional[str] = None
    ai_filters: List[FileFilter] = field(default_factory=list)

    def validate(self) -> None:
        """Check option compatibility.

        Raises:
            FilterError: If modified and changes are both set
        """
        if self.modified and self.changes:
            raise FilterError(
                "The modified and changes options cannot be used together",
                error_code=ErrorCode.CONFLICT,
            )

    def commit_range(self):
        """Split ``changes`` into (from_commit, to_commit)."""
        parts = (self.changes or "").split(":")
        to_commit = parts[1] if len(parts) > 1 else ""
        return parts[0], to_commit or "HEAD"


def create_pipeline(
    base_path: Union[str, Path],
    options: Optional[FilterOptions] = None,
    ruleset: Optional[RulesetFilter] = None,
    reporter: Optional[Logger] = None,
) -> FilterPipeline:
    """Create a filter pipeline.

    Args:
        base_path: Directory being selected from
        options: Secondary stage options
        ruleset: Optional ruleset stage, always first
        reporter: Logger passed to the pipeline; also decides whether a git
            stage that cannot be built is skipped (with reporter) or raised

    Returns:
        Configured pipeline

    Raises:
        FilterError: If the options conflict
        GitError: If a git stage cannot be built and no reporter is attached
    """
    options = options or FilterOptions()
    options.validate()

    pipeline = FilterPipeline(reporter=reporter)

    if ruleset is not None:
        pipeline.add_filter(ruleset)

    try:
        if options.changes:
            from_commit, to_commit = options.commit_range()
            pipeline.add_filter(ChangeFilter(base_path, from_commit, to_commit))
        elif options.modified:
            pipeline.add_filter(ModifiedFilter(base_path))
    except GitError as e:
        if reporter is None:
            raise
        reporter.warning("Failed to create git filter", error=e.message)

    for stage in options.ai_filters:
        pipeline.add_filter(stage)

    return pipeline
