#!/usr/bin/env python3
"""Ruleset-based file selection.

This module decides which files of a tree are selected by a ruleset:
- Include rule sets: a file is selected if every term of some set matches
- Global exclude rules: any match deselects the file
- Always include / always exclude: literal relative paths that override rules
- Images are never selected

Decision order for every file:
    image > always-exclude > always-include > global-exclude > include sets
A ruleset without include sets selects every file that gets past the
earlier checks.

Example:
    >>> ruleset = RulesetFilter.from_dict({
    ...     "rules": [[["extension", "=", "py"]]],
    ...     "always": {"include": ["README.md"]},
    ... }, "/srv/app")
    >>> [entry.path for entry in ruleset.scan()]
    ['README.md', 'src/main.py']
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

from treepick.core.constants import ErrorCode, RulesetKey
from treepick.core.logging import Logger, get_logger
from treepick.core.validators import ValidationError, validate_ruleset_document
from treepick.filters.base import FileEntry, FileFilter
from treepick.rules.evaluator import RuleEvaluator
from treepick.rules.fields import FileAttributeExtractor, is_image
from treepick.rules.rule import Rule, RuleSet
from treepick.scanning.iterator import FilteredDirIterator


class RulesetError(Exception):
    """A ruleset could not be loaded or applied."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INVALID_INPUT,
        source: Optional[str] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.source = source
        super().__init__(message)


@dataclass
class RulesetDocument:
    """The parsed rules of a ruleset document.

    Attributes:
        include_rule_sets: Rule sets from "rules"
        global_exclude_rules: Rules from "globalExcludeRules"
        always_include: Paths from "always.include"
        always_exclude: Paths from "always.exclude"
    """

    include_rule_sets: List[RuleSet] = field(default_factory=list)
    global_exclude_rules: List[Rule] = field(default_factory=list)
    always_include: List[str] = field(default_factory=list)
    always_exclude: List[str] = field(default_factory=list)

    @classmethod
    def parse(cls, data: Dict[str, Any]) -> "RulesetDocument":
        """Validate a document and build its rules.

        The "external" key and unknown keys are ignored.

        Raises:
            RulesetError: If the document or any rule in it is invalid; the
                message names the failing entry
        """
        try:
            validate_ruleset_document(data)
        except ValidationError as e:
            raise RulesetError(e.message) from e

        document = cls()

        for i, rule_set in enumerate(data.get(RulesetKey.RULES, [])):
            try:
                document.include_rule_sets.append(RuleSet.from_list(rule_set))
            except ValidationError as e:
                raise RulesetError(f"{RulesetKey.RULES}[{i}]{e.message}") from e

        for i, rule in enumerate(data.get(RulesetKey.GLOBAL_EXCLUDE_RULES, [])):
            try:
                document.global_exclude_rules.append(Rule.from_list(rule))
            except ValidationError as e:
                raise RulesetError(f"{RulesetKey.GLOBAL_EXCLUDE_RULES}[{i}]: {e.message}") from e

        always = data.get(RulesetKey.ALWAYS, {})
        document.always_include.extend(always.get(RulesetKey.ALWAYS_INCLUDE, []))
        document.always_exclude.extend(always.get(RulesetKey.ALWAYS_EXCLUDE, []))

        return document


class RulesetFilter(FileFilter):
    """Selects files under a base path according to a ruleset."""

    def __init__(
        self,
        base_path: Union[str, Path],
        config=None,
        logger: Optional[Logger] = None,
    ):
        """Initialize an empty ruleset filter.

        Args:
            base_path: Directory the ruleset applies to
            config: Optional ConfigManager supplying walker settings
            logger: Optional logger
        """
        self.base_path = Path(os.path.realpath(base_path))
        self.config = config
        self._logger = logger or get_logger()

        self._extractor = FileAttributeExtractor(self.base_path)
        self._evaluator = RuleEvaluator(self.base_path, self._extractor)

        self.include_rule_sets: List[RuleSet] = []
        self.global_exclude_rules: List[Rule] = []
        self.always_include_files: List[str] = []
        self.always_exclude_files: List[str] = []
        self._description: Optional[str] = None

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        base_path: Union[str, Path],
        config=None,
        logger: Optional[Logger] = None,
    ) -> "RulesetFilter":
        """Build a filter from a parsed ruleset document.

        The "external" key and unknown keys are ignored.

        Args:
            data: Ruleset document
            base_path: Directory the ruleset applies to
            config: Optional ConfigManager
            logger: Optional logger

        Returns:
            Configured RulesetFilter

        Raises:
            RulesetError: If the document or any rule in it is invalid
        """
        return cls(base_path, config=config, logger=logger).extend(RulesetDocument.parse(data))

    @classmethod
    def from_json(
        cls,
        text: str,
        base_path: Union[str, Path],
        config=None,
        logger: Optional[Logger] = None,
    ) -> "RulesetFilter":
        """Build a filter from a JSON ruleset document.

        Raises:
            RulesetError: If the text is not valid JSON or the ruleset is invalid
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise RulesetError(f"Invalid JSON: {e}") from e

        return cls.from_dict(data, base_path, config=config, logger=logger)

    def add_include_rule_set(self, rule_set: RuleSet) -> "RulesetFilter":
        self.include_rule_sets.append(rule_set)
        return self

    def add_global_exclude_rule(self, rule: Rule) -> "RulesetFilter":
        self.global_exclude_rules.append(rule)
        return self

    def add_always_include_files(self, paths: Iterable[str]) -> "RulesetFilter":
        self.always_include_files.extend(paths)
        return self

    def add_always_exclude_files(self, paths: Iterable[str]) -> "RulesetFilter":
        self.always_exclude_files.extend(paths)
        return self

    def extend(self, document: RulesetDocument) -> "RulesetFilter":
        """Append every rule and path of a parsed document."""
        for rule_set in document.include_rule_sets:
            self.add_include_rule_set(rule_set)
        for rule in document.global_exclude_rules:
            self.add_global_exclude_rule(rule)
        self.add_always_include_files(document.always_include)
        self.add_always_exclude_files(document.always_exclude)
        return self

    def set_description(self, description: str) -> "RulesetFilter":
        self._description = description
        return self

    def should_include(self, file: Union[str, Path], relative_path: str) -> bool:
        """Decide whether a file is selected.

        Args:
            file: File on disk
            relative_path: Its forward-slash path relative to the base path

        Returns:
            True if the file is selected

        Raises:
            RuleEvaluationError: If a rule needs an attribute that cannot be read
        """
        if is_image(file):
            return False

        if relative_path in self.always_exclude_files:
            return False

        if relative_path in self.always_include_files:
            return True

        matches = self._evaluator.predicate(file)

        if any(rule.matches(matches) for rule in self.global_exclude_rules):
            return False

        if not self.include_rule_sets:
            return True

        return any(rule_set.matches(matches) for rule_set in self.include_rule_sets)

    def scan(self) -> Iterator[FileEntry]:
        """Walk the base path, yielding selected files lazily.

        Yields:
            FileEntry for every selected file

        Raises:
            RulesetError: If the base path is not a directory
        """
        if not self.base_path.is_dir():
            raise RulesetError(
                f"Base path does not exist: {self.base_path}",
                ErrorCode.NOT_FOUND,
                str(self.base_path),
            )

        if self.config is not None:
            walker = FilteredDirIterator.from_config(self.base_path, self.config, logger=self._logger)
        else:
            walker = FilteredDirIterator(self.base_path, logger=self._logger)

        for path in walker.files():
            relative_path = self._extractor.relative_path(path)
            if self.should_include(path, relative_path):
                yield FileEntry(relative_path, path)

    def filter(self, files: List[FileEntry], context: Mapping[str, Any]) -> List[FileEntry]:
        """Filter a list of files, or scan the base path when the list is empty."""
        if not files:
            return list(self.scan())

        return [entry for entry in files if self.should_include(entry.file, entry.path)]

    def should_apply(self, context: Mapping[str, Any]) -> bool:
        # Image exclusion changes the file set even without rules
        return True

    def describe(self) -> str:
        if self._description is not None:
            return self._description

        parts = []
        if self.include_rule_sets:
            parts.append(f"{len(self.include_rule_sets)} include rule sets")
        if self.global_exclude_rules:
            parts.append(f"{len(self.global_exclude_rules)} global exclude rules")
        if self.always_include_files:
            parts.append(f"{len(self.always_include_files)} always-include files")
        if self.always_exclude_files:
            parts.append(f"{len(self.always_exclude_files)} always-exclude files")

        if not parts:
            return "No rules configured"
        return "Ruleset filter with " + ", ".join(parts)
