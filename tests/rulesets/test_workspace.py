#!/usr/bin/env python3
"""Tests for workspace definitions."""

import pytest

from treepick.core.constants import ErrorCode
from treepick.filters.ruleset import RulesetError
from treepick.rulesets.manager import RulesetManager, RulesetNotFoundError
from treepick.rulesets.workspace import (
    Workspace,
    WorkspaceManager,
    WorkspaceNotFoundError,
    WorkspaceResolver,
)


def scanned(ruleset):
    return sorted(entry.path for entry in ruleset.scan())


@pytest.fixture
def write_workspaces(project_dir, write_ruleset):
    """Write ``.treepick/workspaces.json`` for the project."""

    def _write(workspaces):
        return write_ruleset(project_dir / ".treepick" / "workspaces.json", {"workspaces": workspaces})

    return _write


class TestWorkspaceManager:
    """Tests for loading workspaces.json."""

    def test_loads_definitions(self, project_dir, write_workspaces):
        write_workspaces(
            {
                "frontend": {"extends": "sveltekit", "rules": [[["folder", "startsWith", "src/components"]]]},
                "docs": {"rules": [[["extension", "=", "md"]]]},
            }
        )

        manager = WorkspaceManager(project_dir / ".treepick")

        assert manager.has_workspace("frontend")
        assert manager.get_available_workspaces() == ["frontend", "docs"]
        frontend = manager.get_workspace("frontend")
        assert frontend.extends == "sveltekit"
        assert len(frontend.document.include_rule_sets) == 1

    def test_missing_file_means_no_workspaces(self, project_dir):
        manager = WorkspaceManager(project_dir / ".treepick")

        assert not manager.has_workspace("frontend")
        assert manager.get_workspace("frontend") is None
        assert manager.get_available_workspaces() == []

    def test_invalid_json(self, project_dir):
        (project_dir / ".treepick").mkdir()
        (project_dir / ".treepick" / "workspaces.json").write_text("invalid json")

        with pytest.raises(RulesetError, match="Invalid workspace configuration") as exc_info:
            WorkspaceManager(project_dir / ".treepick")
        assert exc_info.value.source.endswith("workspaces.json")

    def test_workspaces_must_be_an_object(self, project_dir, write_ruleset):
        write_ruleset(project_dir / ".treepick" / "workspaces.json", {"workspaces": ["frontend"]})

        with pytest.raises(RulesetError, match="'workspaces' must be an object"):
            WorkspaceManager(project_dir / ".treepick")

    def test_invalid_rule_names_workspace(self, project_dir, write_workspaces):
        write_workspaces({"broken": {"rules": [[["colour", "=", "red"]]]}})

        with pytest.raises(RulesetError) as exc_info:
            WorkspaceManager(project_dir / ".treepick")

        assert 'Workspace "broken": rules[0][0]' in exc_info.value.message
        assert exc_info.value.error_code == ErrorCode.INVALID_INPUT

    def test_extends_must_be_a_name(self, project_dir, write_workspaces):
        write_workspaces({"odd": {"extends": ["python"]}})

        with pytest.raises(RulesetError, match="'extends' must be a ruleset name"):
            WorkspaceManager(project_dir / ".treepick")

    def test_definition_must_be_an_object(self):
        with pytest.raises(RulesetError, match='Workspace "odd" must be a JSON object'):
            Workspace.from_dict("odd", "python")


class TestWorkspaceResolver:
    """Tests for building a ruleset from a workspace."""

    def test_extends_named_ruleset(self, project_dir):
        workspace = Workspace.from_dict(
            "app", {"extends": "python", "globalExcludeRules": [["folder", "startsWith", "docs"]]}
        )

        ruleset = WorkspaceResolver(RulesetManager(project_dir)).resolve_workspace(workspace)

        assert scanned(ruleset) == ["README.md", "main.py", "src/app.py"]

    def test_without_extends_starts_empty(self, project_dir):
        workspace = Workspace.from_dict("js", {"rules": [[["extension", "=", "js"]]]})

        ruleset = WorkspaceResolver(RulesetManager(project_dir)).resolve_workspace(workspace)

        assert scanned(ruleset) == ["src/util.js"]

    def test_rule_sets_are_added_to_extended_ones(self, project_dir, write_ruleset):
        write_ruleset(project_dir / ".treepick" / "base.json", {"rules": [[["extension", "=", "py"]]]})
        workspace = Workspace.from_dict("wider", {"extends": "base", "rules": [[["extension", "=", "js"]]]})

        ruleset = WorkspaceResolver(RulesetManager(project_dir)).resolve_workspace(workspace)

        assert len(ruleset.include_rule_sets) == 2
        assert scanned(ruleset) == ["main.py", "src/app.py", "src/util.js"]

    def test_always_lists(self, project_dir):
        workspace = Workspace.from_dict(
            "picked",
            {
                "rules": [[["extension", "=", "js"]]],
                "always": {"include": ["README.md"], "exclude": ["src/util.js"]},
            },
        )

        ruleset = WorkspaceResolver(RulesetManager(project_dir)).resolve_workspace(workspace)

        assert scanned(ruleset) == ["README.md"]

    def test_unknown_extended_ruleset(self, project_dir):
        workspace = Workspace.from_dict("x", {"extends": "rails"})

        with pytest.raises(RulesetNotFoundError):
            WorkspaceResolver(RulesetManager(project_dir)).resolve_workspace(workspace)


class TestManagerWorkspaces:
    """Tests for RulesetManager.get_workspace_ruleset."""

    def test_resolves_workspace(self, project_dir, write_workspaces):
        write_workspaces({"docs": {"extends": "none", "rules": [[["extension", "=", "md"]]]}})

        ruleset = RulesetManager(project_dir).get_workspace_ruleset("docs")

        assert scanned(ruleset) == ["README.md", "docs/guide.md"]

    def test_unknown_workspace(self, project_dir, write_workspaces):
        write_workspaces({})

        with pytest.raises(WorkspaceNotFoundError) as exc_info:
            RulesetManager(project_dir).get_workspace_ruleset("frontend")

        assert exc_info.value.message == 'Workspace "frontend" not found.'
        assert exc_info.value.error_code == ErrorCode.NOT_FOUND

    def test_logs_with_workspace_context(self, project_dir, write_workspaces, logger, log_handler):
        write_workspaces({"app": {"extends": "python"}})

        RulesetManager(project_dir, logger=logger).get_workspace_ruleset("app")

        predefined = [msg for _, msg in log_handler.messages if msg.startswith("Using predefined ruleset")]
        assert "workspace=app" in predefined[0]
        assert "ruleset=python" in predefined[0]

    def test_workspaces_file_is_not_a_ruleset(self, project_dir, write_workspaces):
        write_workspaces({"docs": {}})

        assert "workspaces" not in RulesetManager(project_dir).get_available_rulesets()
