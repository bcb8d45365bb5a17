#!/usr/bin/env python3
"""Tests for RulesetFilter."""

import json
import os
from pathlib import Path
from types import MappingProxyType

import pytest

from treepick.core.config import ConfigManager
from treepick.core.constants import ConfigKey, ErrorCode
from treepick.filters.base import FileEntry
from treepick.filters.ruleset import RulesetError, RulesetFilter
from treepick.rules.fields import RuleEvaluationError
from treepick.rules.rule import Rule, RuleSet


def scanned(ruleset: RulesetFilter):
    return sorted(entry.path for entry in ruleset.scan())


EMPTY_CONTEXT = MappingProxyType({})


class TestPrecedence:
    """Every file goes through image > exclude > include > global > rule sets."""

    def test_empty_ruleset_selects_all_non_images(self, project_dir):
        ruleset = RulesetFilter(project_dir)

        assert scanned(ruleset) == ["README.md", "docs/guide.md", "main.py", "src/app.py", "src/util.js"]

    def test_images_always_excluded(self, project_dir):
        ruleset = RulesetFilter.from_dict({"always": {"include": ["logo.png"]}}, project_dir)

        assert not ruleset.should_include(project_dir / "logo.png", "logo.png")
        assert "logo.png" not in scanned(ruleset)

    def test_include_rule_sets(self, project_dir):
        ruleset = RulesetFilter.from_dict({"rules": [[["extension", "=", "py"]]]}, project_dir)

        assert scanned(ruleset) == ["main.py", "src/app.py"]

    def test_rule_sets_are_or_combined(self, project_dir):
        ruleset = RulesetFilter.from_dict(
            {"rules": [[["extension", "=", "js"]], [["basename", "=", "README.md"]]]}, project_dir
        )

        assert scanned(ruleset) == ["README.md", "src/util.js"]

    def test_rules_in_a_set_are_and_combined(self, project_dir):
        ruleset = RulesetFilter.from_dict(
            {"rules": [[["extension", "=", "py"], ["folder", "=", "src"]]]}, project_dir
        )

        assert scanned(ruleset) == ["src/app.py"]

    def test_or_group_inside_a_set(self, project_dir):
        ruleset = RulesetFilter.from_dict(
            {
                "rules": [
                    [
                        ["OR", [["extension", "=", "md"], ["extension", "=", "js"]]],
                        ["folder", "notStartsWith", "docs"],
                    ]
                ]
            },
            project_dir,
        )

        assert scanned(ruleset) == ["README.md", "src/util.js"]

    def test_global_exclude_beats_rule_sets(self, project_dir):
        ruleset = RulesetFilter.from_dict(
            {
                "rules": [[["extension", "=", "py"]]],
                "globalExcludeRules": [["folder", "=", "src"]],
            },
            project_dir,
        )

        assert scanned(ruleset) == ["main.py"]

    def test_global_exclude_without_rule_sets(self, project_dir):
        ruleset = RulesetFilter.from_dict({"globalExcludeRules": [["extension", "=", "md"]]}, project_dir)

        assert scanned(ruleset) == ["main.py", "src/app.py", "src/util.js"]

    def test_always_include_beats_global_exclude_and_rule_sets(self, project_dir):
        ruleset = RulesetFilter.from_dict(
            {
                "rules": [[["extension", "=", "py"]]],
                "globalExcludeRules": [["extension", "=", "md"]],
                "always": {"include": ["docs/guide.md"]},
            },
            project_dir,
        )

        assert scanned(ruleset) == ["docs/guide.md", "main.py", "src/app.py"]

    def test_always_exclude_beats_everything_but_images(self, project_dir):
        ruleset = RulesetFilter.from_dict({"always": {"exclude": ["main.py"]}}, project_dir)

        assert "main.py" not in scanned(ruleset)

    def test_path_in_both_always_lists_is_excluded(self, project_dir):
        ruleset = RulesetFilter.from_dict(
            {"always": {"include": ["main.py"], "exclude": ["main.py"]}}, project_dir
        )

        assert not ruleset.should_include(project_dir / "main.py", "main.py")
        assert "main.py" not in scanned(ruleset)

    def test_always_lists_skip_rule_evaluation(self, project_dir):
        ruleset = RulesetFilter.from_dict(
            {
                "globalExcludeRules": [["contents", "contains", "x"]],
                "always": {"include": ["gone.txt"]},
            },
            project_dir,
        )

        # No file is read for always-included paths
        assert ruleset.should_include(project_dir / "gone.txt", "gone.txt")

    def test_evaluation_errors_propagate(self, project_dir):
        ruleset = RulesetFilter.from_dict({"rules": [[["contents", "contains", "x"]]]}, project_dir)

        with pytest.raises(RuleEvaluationError):
            ruleset.should_include(project_dir / "gone.txt", "gone.txt")


class TestScan:
    """Tests for scanning the base path."""

    def test_scan_is_lazy(self, project_dir):
        ruleset = RulesetFilter(project_dir)
        generator = ruleset.scan()

        first = next(generator)

        assert isinstance(first, FileEntry)
        assert first.file.is_absolute()
        assert first.path == first.file.relative_to(project_dir).as_posix()

    def test_skips_ignored_and_hidden(self, project_dir):
        paths = scanned(RulesetFilter(project_dir))

        assert not any(p.startswith("node_modules") for p in paths)
        assert ".env" not in paths

    def test_respects_gitignore(self, project_dir):
        (project_dir / ".gitignore").write_text("docs/\n")

        assert "docs/guide.md" not in scanned(RulesetFilter(project_dir))

    def test_missing_base_path(self, temp_dir):
        ruleset = RulesetFilter(temp_dir / "missing")

        with pytest.raises(RulesetError) as exc_info:
            list(ruleset.scan())
        assert exc_info.value.error_code == ErrorCode.NOT_FOUND

    def test_uses_walker_config(self, project_dir):
        config = ConfigManager(load_environment=False)
        config.set(ConfigKey.WALKER_IGNORED_DIRS, ["docs"])

        paths = scanned(RulesetFilter(project_dir, config=config))

        assert "docs/guide.md" not in paths
        assert "node_modules/lib.js" in paths

    def test_unparsable_gitignore_does_not_abort_scan(self, project_dir, logger, log_handler):
        (project_dir / ".gitignore").write_text("[z-a]\n")

        paths = scanned(RulesetFilter(project_dir, logger=logger))

        assert "README.md" in paths
        assert any(level == "WARNING" for level, _ in log_handler.messages)

    def test_always_include_under_linked_sibling(self, temp_dir):
        (temp_dir / "real").mkdir()
        (temp_dir / "real" / "x.txt").write_text("x\n")
        os.symlink(temp_dir / "real", temp_dir / "link")
        ruleset = RulesetFilter.from_dict(
            {"rules": [[["extension", "=", "none"]]], "always": {"include": ["link/x.txt"]}},
            temp_dir,
        )

        assert scanned(ruleset) == ["link/x.txt"]


class TestFilterStage:
    """Tests for the pipeline stage interface."""

    def test_filter_empty_list_scans(self, project_dir):
        ruleset = RulesetFilter.from_dict({"rules": [[["extension", "=", "md"]]]}, project_dir)

        files = ruleset.filter([], EMPTY_CONTEXT)

        assert sorted(f.path for f in files) == ["README.md", "docs/guide.md"]

    def test_filter_existing_list(self, project_dir):
        ruleset = RulesetFilter.from_dict({"rules": [[["extension", "=", "py"]]]}, project_dir)
        files = [
            FileEntry("main.py", project_dir / "main.py"),
            FileEntry("README.md", project_dir / "README.md"),
        ]

        assert ruleset.filter(files, EMPTY_CONTEXT) == [files[0]]

    def test_should_apply_even_when_empty(self, project_dir):
        assert RulesetFilter(project_dir).should_apply(EMPTY_CONTEXT)

    def test_describe(self, project_dir):
        assert RulesetFilter(project_dir).describe() == "No rules configured"

        ruleset = RulesetFilter.from_dict(
            {
                "rules": [[["extension", "=", "py"]], [["extension", "=", "md"]]],
                "globalExcludeRules": [["size", ">", "1m"]],
            },
            project_dir,
        )
        assert ruleset.describe() == "Ruleset filter with 2 include rule sets, 1 global exclude rules"

    def test_describe_always_lists(self, project_dir):
        ruleset = RulesetFilter.from_dict(
            {"always": {"include": ["a", "b"], "exclude": ["c"]}}, project_dir
        )

        assert ruleset.describe() == "Ruleset filter with 2 always-include files, 1 always-exclude files"

    def test_custom_description(self, project_dir):
        ruleset = RulesetFilter(project_dir).set_description("Laravel ruleset")

        assert ruleset.describe() == "Laravel ruleset"


class TestBuilders:
    """Tests for building rulesets."""

    def test_from_json(self, project_dir):
        text = json.dumps({"rules": [[["extension", "=", "js"]]], "external": [{"source": "x"}]})

        assert scanned(RulesetFilter.from_json(text, project_dir)) == ["src/util.js"]

    def test_from_json_invalid(self, project_dir):
        with pytest.raises(RulesetError, match="Invalid JSON"):
            RulesetFilter.from_json("{not json", project_dir)

    def test_invalid_rule_names_location(self, project_dir):
        with pytest.raises(RulesetError, match=r"rules\[0\]\[1\]: Unknown rule operator"):
            RulesetFilter.from_dict({"rules": [[["path", "=", "a"], ["path", "like", "b"]]]}, project_dir)

    def test_invalid_global_exclude(self, project_dir):
        with pytest.raises(RulesetError, match=r"globalExcludeRules\[0\]"):
            RulesetFilter.from_dict({"globalExcludeRules": [["size", ">", "big"]]}, project_dir)

    def test_invalid_structure(self, project_dir):
        with pytest.raises(RulesetError) as exc_info:
            RulesetFilter.from_dict({"always": "everything"}, project_dir)
        assert exc_info.value.error_code == ErrorCode.INVALID_INPUT

    def test_programmatic_builders_chain(self, project_dir):
        ruleset = (
            RulesetFilter(project_dir)
            .add_include_rule_set(RuleSet.from_list([["extension", "=", "py"]]))
            .add_global_exclude_rule(Rule.from_list(["folder", "=", "src"]))
            .add_always_include_files(["README.md"])
            .add_always_exclude_files([])
        )

        assert scanned(ruleset) == ["README.md", "main.py"]

    def test_base_path_is_resolved(self, project_dir):
        ruleset = RulesetFilter(project_dir / "src" / "..")

        assert ruleset.base_path == Path(project_dir)
