"""TreePick - rule-based file selection for directory trees.

Select the files of a project that a declarative JSON ruleset describes,
then narrow them further with git-based or externally supplied stages.

Example:
    >>> from treepick import RulesetManager, FilterOptions, create_pipeline
    >>> ruleset = RulesetManager("/srv/app").get_ruleset("auto")
    >>> pipeline = create_pipeline("/srv/app", FilterOptions(modified=True), ruleset)
    >>> files = pipeline.execute([])
"""

from treepick.core.constants import TREEPICK_VERSION
from treepick.filters import (
    FileEntry,
    FileFilter,
    FilterOptions,
    FilterPipeline,
    RulesetError,
    RulesetFilter,
    create_pipeline,
)
from treepick.rules import Rule, RuleEvaluator, RuleField, RuleOperator, RuleSet
from treepick.rulesets import RulesetManager, RulesetNotFoundError
from treepick.scanning import FilteredDirIterator

__version__ = TREEPICK_VERSION

__all__ = [
    "__version__",
    "FileEntry",
    "FileFilter",
    "FilterOptions",
    "FilterPipeline",
    "FilteredDirIterator",
    "Rule",
    "RuleEvaluator",
    "RuleField",
    "RuleOperator",
    "RuleSet",
    "RulesetError",
    "RulesetFilter",
    "RulesetManager",
    "RulesetNotFoundError",
    "create_pipeline",
]
