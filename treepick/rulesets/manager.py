#!/usr/bin/env python3
"""Ruleset resolution and loading.

This module turns a ruleset name into a configured RulesetFilter:
- "none": an empty ruleset (every non-image file)
- an explicit name: project-local file first, then a predefined ruleset
- "auto": the project's own ruleset.json, else a detected project type,
  else the default ruleset
- a workspace: a ruleset from workspaces.json layered on a named ruleset

Project-local rulesets live in ``<base>/.treepick/<name>.json``. Predefined
rulesets ship with the package and can be extended through the
``treepick.rulesets.search_paths`` setting.

Example:
    >>> manager = RulesetManager("/srv/app")
    >>> ruleset = manager.get_ruleset("auto")
    >>> ruleset.describe()
    'Ruleset filter with 3 include rule sets, 2 global exclude rules, 2 always-include files'
"""

import json
from pathlib import Path
from typing import List, Optional, Sequence, Union

from treepick.core.constants import RULESET_FILE_SUFFIX, ConfigKey, ErrorCode, RulesetKey, RulesetName
from treepick.core.logging import Logger, get_logger
from treepick.filters.ruleset import RulesetError, RulesetFilter
from treepick.rulesets.guesser import RulesetGuesser
from treepick.rulesets.workspace import WorkspaceManager, WorkspaceNotFoundError, WorkspaceResolver

# Rulesets bundled with the package
PREDEFINED_RULESETS_DIR = Path(__file__).parent / "data"


class RulesetNotFoundError(RulesetError):
    """No ruleset exists under the requested name."""

    def __init__(self, name: str):
        super().__init__(f'Ruleset "{name}" not found.', ErrorCode.NOT_FOUND, name)
        self.name = name


class RulesetManager:
    """Resolves ruleset names to RulesetFilter instances for a base path."""

    def __init__(
        self,
        base_path: Union[str, Path],
        config=None,
        logger: Optional[Logger] = None,
        predefined_dirs: Optional[Sequence[Union[str, Path]]] = None,
    ):
        """Initialize manager.

        Args:
            base_path: Project directory rulesets apply to
            config: Optional ConfigManager (project dir, search paths, walker)
            logger: Optional logger
            predefined_dirs: Directories searched for predefined rulesets, in
                order. Defaults to configured search paths followed by the
                bundled rulesets.
        """
        self.base_path = Path(base_path)
        self.config = config
        self._logger = logger or get_logger()

        project_dir = ".treepick"
        if config is not None:
            project_dir = config.get(ConfigKey.RULESETS_PROJECT_DIR, project_dir)
        self.project_dir = self.base_path / project_dir

        if predefined_dirs is None:
            search_paths = config.get(ConfigKey.RULESETS_SEARCH_PATHS, []) if config is not None else []
            if isinstance(search_paths, str):
                search_paths = [search_paths]
            predefined_dirs = [Path(p).expanduser() for p in search_paths] + [PREDEFINED_RULESETS_DIR]
        self.predefined_dirs = [Path(d) for d in predefined_dirs]

    def get_ruleset(self, name: str) -> RulesetFilter:
        """Get the ruleset for a name.

        Args:
            name: Ruleset name, or "none" / "auto"

        Returns:
            Configured RulesetFilter

        Raises:
            RulesetNotFoundError: If an explicit name matches no ruleset
            RulesetError: If the ruleset file is malformed
        """
        with self._logger.add_context(ruleset=name):
            return self._resolve(name)

    def _resolve(self, name: str) -> RulesetFilter:
        if name == RulesetName.NONE:
            self._logger.debug("Using no ruleset")
            return self.create_empty_ruleset()

        if name != RulesetName.AUTO:
            custom = self._project_ruleset_path(name)
            if custom.is_file():
                self._logger.info("Using custom ruleset", path=str(custom))
                return self.load_ruleset_file(custom)

            predefined = self._predefined_ruleset_path(name)
            if predefined is not None:
                self._logger.info("Using predefined ruleset", path=str(predefined))
                return self.load_ruleset_file(predefined)

            raise RulesetNotFoundError(name)

        custom_default = self._project_ruleset_path(RulesetName.PROJECT_DEFAULT)
        if custom_default.is_file():
            self._logger.info("Using custom default ruleset", path=str(custom_default))
            return self.load_ruleset_file(custom_default)

        guessed = RulesetGuesser(self.base_path).guess()
        if guessed != RulesetName.DEFAULT:
            guessed_path = self._predefined_ruleset_path(guessed)
            if guessed_path is not None:
                self._logger.info("Auto-detected ruleset", detected=guessed)
                return self.load_ruleset_file(guessed_path)

        default_path = self._predefined_ruleset_path(RulesetName.DEFAULT)
        if default_path is None:
            raise RulesetNotFoundError(RulesetName.DEFAULT)

        self._logger.info("Using default ruleset")
        return self.load_ruleset_file(default_path)

    def get_workspace_ruleset(self, name: str) -> RulesetFilter:
        """Resolve a workspace defined in the project's workspaces file.

        Args:
            name: Workspace name

        Returns:
            The workspace's RulesetFilter

        Raises:
            WorkspaceNotFoundError: If the project defines no such workspace
            RulesetError: If the workspaces file or the extended ruleset is
                invalid
        """
        with self._logger.add_context(workspace=name):
            workspace = WorkspaceManager(self.project_dir, logger=self._logger).get_workspace(name)
            if workspace is None:
                raise WorkspaceNotFoundError(name)

            self._logger.info("Using workspace", extends=workspace.extends or RulesetName.NONE)
            return WorkspaceResolver(self).resolve_workspace(workspace)

    def get_available_rulesets(self) -> List[str]:
        """List selectable ruleset names, "auto" first.

        Includes predefined and project-local rulesets, without the reserved
        names and without duplicates.
        """
        names: List[str] = [RulesetName.AUTO]

        directories = self.predefined_dirs + [self.project_dir]
        for directory in directories:
            if not directory.is_dir():
                continue
            for path in sorted(directory.glob(f"*{RULESET_FILE_SUFFIX}")):
                name = path.stem
                if name not in RulesetName.HIDDEN and name not in names:
                    names.append(name)

        return names

    def create_ruleset_from_globs(self, globs: Sequence[str]) -> RulesetFilter:
        """Create a ruleset selecting files whose path matches any glob.

        Raises:
            RulesetError: If a glob is not a string
        """
        rules = [[["path", "glob", glob]] for glob in globs]
        return RulesetFilter.from_dict(
            {RulesetKey.RULES: rules}, self.base_path, config=self.config, logger=self._logger
        )

    def create_ruleset_from_glob(self, glob: str) -> RulesetFilter:
        return self.create_ruleset_from_globs([glob])

    def create_empty_ruleset(self) -> RulesetFilter:
        return RulesetFilter(self.base_path, config=self.config, logger=self._logger)

    def load_ruleset_file(self, path: Union[str, Path]) -> RulesetFilter:
        """Load a ruleset from a JSON file.

        Args:
            path: Ruleset file

        Returns:
            Configured RulesetFilter

        Raises:
            RulesetError: If the file cannot be read or is not a valid ruleset
        """
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                text = f.read()
        except OSError as e:
            raise RulesetError(f"Failed to read ruleset {path}: {e}", ErrorCode.NOT_FOUND, str(path)) from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise RulesetError(f"Invalid JSON in ruleset {path}: {e}", source=str(path)) from e

        try:
            return RulesetFilter.from_dict(data, self.base_path, config=self.config, logger=self._logger)
        except RulesetError as e:
            raise RulesetError(f"Invalid ruleset {path}: {e.message}", e.error_code, str(path)) from e

    def _project_ruleset_path(self, name: str) -> Path:
        return self.project_dir / f"{name}{RULESET_FILE_SUFFIX}"

    def _predefined_ruleset_path(self, name: str) -> Optional[Path]:
        for directory in self.predefined_dirs:
            candidate = directory / f"{name}{RULESET_FILE_SUFFIX}"
            if candidate.is_file():
                return candidate
        return None
