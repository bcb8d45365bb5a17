#!/usr/bin/env python3
"""Workspace definitions.

A workspace is a named variant of a ruleset, kept in
``<base>/.treepick/workspaces.json``:

    {
        "workspaces": {
            "frontend": {
                "extends": "sveltekit",
                "rules": [[["folder", "startsWith", "src/components"]]],
                "always": {"include": ["package.json"]}
            }
        }
    }

Resolving a workspace starts from the ruleset named by "extends" (or an
empty ruleset) and appends the workspace's own include rule sets, global
exclude rules and always lists to it. Definitions are validated when the
file is loaded.

Example:
    >>> manager = RulesetManager("/srv/app")
    >>> workspace = WorkspaceManager(manager.project_dir).get_workspace("frontend")
    >>> ruleset = WorkspaceResolver(manager).resolve_workspace(workspace)
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from treepick.core.constants import WORKSPACES_FILENAME, ErrorCode, WorkspaceKey
from treepick.core.logging import Logger, get_logger
from treepick.filters.ruleset import RulesetDocument, RulesetError, RulesetFilter


class WorkspaceNotFoundError(RulesetError):
    """No workspace exists under the requested name."""

    def __init__(self, name: str):
        super().__init__(f'Workspace "{name}" not found.', ErrorCode.NOT_FOUND, name)
        self.name = name


@dataclass
class Workspace:
    """A validated workspace definition.

    Attributes:
        name: Key of the workspace in the workspaces file
        extends: Ruleset name the workspace builds on, if any
        document: Rules layered on top of the extended ruleset
    """

    name: str
    extends: Optional[str] = None
    document: RulesetDocument = field(default_factory=RulesetDocument)

    @classmethod
    def from_dict(cls, name: str, data: Any) -> "Workspace":
        """Build a workspace from its JSON definition.

        Raises:
            RulesetError: If the definition or any rule in it is invalid
        """
        if not isinstance(data, dict):
            raise RulesetError(f'Workspace "{name}" must be a JSON object')

        extends = data.get(WorkspaceKey.EXTENDS)
        if extends is not None and not isinstance(extends, str):
            raise RulesetError(f'Workspace "{name}": \'{WorkspaceKey.EXTENDS}\' must be a ruleset name')

        try:
            document = RulesetDocument.parse(data)
        except RulesetError as e:
            raise RulesetError(f'Workspace "{name}": {e.message}', e.error_code) from e

        return cls(name, extends, document)


class WorkspaceManager:
    """Loads the workspace definitions of a project."""

    def __init__(self, project_dir: Union[str, Path], logger: Optional[Logger] = None):
        """Initialize manager and load ``workspaces.json`` if it exists.

        Args:
            project_dir: Directory holding the project-local rulesets
            logger: Optional logger

        Raises:
            RulesetError: If the file cannot be read or holds an invalid
                definition
        """
        self.path = Path(project_dir) / WORKSPACES_FILENAME
        self._logger = logger or get_logger()
        self._workspaces: Dict[str, Workspace] = {}

        if self.path.is_file():
            self._load()

    def _load(self) -> None:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise self._error(f"cannot be read: {e}", ErrorCode.NOT_FOUND) from e
        except json.JSONDecodeError as e:
            raise self._error(str(e)) from e

        if not isinstance(data, dict):
            raise self._error("not a JSON object")

        definitions = data.get(WorkspaceKey.WORKSPACES, {})
        if not isinstance(definitions, dict):
            raise self._error(f"'{WorkspaceKey.WORKSPACES}' must be an object")

        for name, definition in definitions.items():
            try:
                self._workspaces[name] = Workspace.from_dict(name, definition)
            except RulesetError as e:
                raise self._error(e.message, e.error_code) from e

        self._logger.debug("Loaded workspaces", path=str(self.path), count=len(self._workspaces))

    def _error(self, detail: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT) -> RulesetError:
        message = f"Invalid workspace configuration {self.path}: {detail}"
        return RulesetError(message, error_code, str(self.path))

    def has_workspace(self, name: str) -> bool:
        return name in self._workspaces

    def get_workspace(self, name: str) -> Optional[Workspace]:
        return self._workspaces.get(name)

    def get_available_workspaces(self) -> List[str]:
        """List workspace names in file order."""
        return list(self._workspaces)


class WorkspaceResolver:
    """Turns a workspace into a RulesetFilter."""

    def __init__(self, ruleset_manager):
        """Initialize resolver.

        Args:
            ruleset_manager: RulesetManager that resolves "extends"
        """
        self.ruleset_manager = ruleset_manager

    def resolve_workspace(self, workspace: Workspace) -> RulesetFilter:
        """Build the workspace's ruleset.

        Returns:
            The extended ruleset (or an empty one) with the workspace's
            rules appended

        Raises:
            RulesetNotFoundError: If "extends" names no ruleset
            RulesetError: If the extended ruleset is malformed
        """
        if workspace.extends is not None:
            ruleset = self.ruleset_manager.get_ruleset(workspace.extends)
        else:
            ruleset = self.ruleset_manager.create_empty_ruleset()

        return ruleset.extend(workspace.document)
