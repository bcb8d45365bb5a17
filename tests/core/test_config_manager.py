#!/usr/bin/env python3
"""Tests for the layered configuration manager."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from treepick.core.config import ConfigError, ConfigManager, ConfigSource
from treepick.core.constants import ConfigKey, ErrorCode


@pytest.fixture
def manager():
    """Config manager that ignores the process environment."""
    return ConfigManager(load_environment=False)


class TestConfigSource:
    """Tests for ConfigSource enum."""

    def test_precedence_order(self):
        assert ConfigSource.COMPILED_DEFAULTS.value < ConfigSource.USER_CONFIG.value
        assert ConfigSource.USER_CONFIG.value < ConfigSource.ENVIRONMENT.value
        assert ConfigSource.ENVIRONMENT.value < ConfigSource.RUNTIME.value


class TestConfigManager:
    """Tests for ConfigManager class."""

    def test_defaults(self, manager):
        assert manager.get(ConfigKey.RULESETS_PROJECT_DIR) == ".treepick"
        assert manager.get(ConfigKey.WALKER_FOLLOW_SYMLINKS) is True
        assert manager.get(ConfigKey.WALKER_RESPECT_GITIGNORE) is True
        assert "node_modules" in manager.get(ConfigKey.WALKER_IGNORED_DIRS)
        assert manager.get(ConfigKey.LOGGING_LEVEL) == "INFO"

    def test_get_missing_returns_default(self, manager):
        assert manager.get("treepick.nothing.here", "fallback") == "fallback"

    def test_load_file(self, manager, temp_dir: Path):
        config_file = temp_dir / "config.yaml"
        config_file.write_text("treepick:\n  rulesets:\n    project_dir: .rules\n")

        manager.load_file(str(config_file))

        assert manager.get(ConfigKey.RULESETS_PROJECT_DIR) == ".rules"
        # Untouched keys still come from defaults
        assert manager.get(ConfigKey.LOGGING_LEVEL) == "INFO"

    def test_constructor_loads_file(self, temp_dir: Path):
        config_file = temp_dir / "config.yaml"
        config_file.write_text("treepick:\n  logging:\n    level: DEBUG\n")

        manager = ConfigManager(str(config_file), load_environment=False)

        assert manager.get(ConfigKey.LOGGING_LEVEL) == "DEBUG"

    def test_load_file_not_found(self, manager, temp_dir: Path):
        with pytest.raises(ConfigError) as exc_info:
            manager.load_file(str(temp_dir / "missing.yaml"))
        assert exc_info.value.error_code == ErrorCode.NOT_FOUND

    def test_load_file_invalid_yaml(self, manager, temp_dir: Path):
        config_file = temp_dir / "bad.yaml"
        config_file.write_text("treepick: [unclosed\n")

        with pytest.raises(ConfigError, match="YAML parse error"):
            manager.load_file(str(config_file))

    def test_load_file_not_dict(self, manager, temp_dir: Path):
        config_file = temp_dir / "list.yaml"
        config_file.write_text("- one\n- two\n")

        with pytest.raises(ConfigError, match="Invalid config format"):
            manager.load_file(str(config_file))

    def test_load_environment(self):
        env = {
            "TREEPICK_WALKER__FOLLOW_SYMLINKS": "false",
            "TREEPICK_RULESETS__PROJECT_DIR": ".ctree",
            "TREEPICK_WALKER__IGNORED_DIRS": "vendor, dist",
        }
        with patch.dict(os.environ, env):
            manager = ConfigManager()

        assert manager.get(ConfigKey.WALKER_FOLLOW_SYMLINKS) is False
        assert manager.get(ConfigKey.RULESETS_PROJECT_DIR) == ".ctree"
        assert manager.get(ConfigKey.WALKER_IGNORED_DIRS) == ["vendor", "dist"]

    def test_parse_env_value(self, manager):
        assert manager._parse_env_value("yes") is True
        assert manager._parse_env_value("No") is False
        assert manager._parse_env_value("42") == 42
        assert manager._parse_env_value("2.5") == 2.5
        assert manager._parse_env_value("a,b") == ["a", "b"]
        assert manager._parse_env_value("text") == "text"

    def test_precedence(self, manager, temp_dir: Path):
        config_file = temp_dir / "config.yaml"
        config_file.write_text("treepick:\n  logging:\n    level: WARNING\n")
        manager.load_file(str(config_file))

        manager.set(ConfigKey.LOGGING_LEVEL, "ERROR")

        assert manager.get(ConfigKey.LOGGING_LEVEL) == "ERROR"

    def test_false_value_overrides_default(self, manager):
        manager.set(ConfigKey.WALKER_RESPECT_GITIGNORE, False)
        assert manager.get(ConfigKey.WALKER_RESPECT_GITIGNORE) is False

    def test_get_all_deep_merges(self, manager):
        manager.load_dict({"treepick": {"logging": {"file": "/tmp/treepick.log"}}})

        merged = manager.get_all()

        assert merged["treepick"]["logging"]["file"] == "/tmp/treepick.log"
        assert merged["treepick"]["logging"]["level"] == "INFO"


class TestValidation:
    """Settings are checked when they are written."""

    def test_defaults_are_valid(self, manager):
        manager.validate()

    def test_load_dict_rejects_non_list_ignored_dirs(self, manager):
        with pytest.raises(ConfigError, match="treepick.walker.ignored_dirs") as exc_info:
            manager.load_dict({"treepick": {"walker": {"ignored_dirs": 5}}})

        assert exc_info.value.error_code == ErrorCode.INVALID_INPUT

    def test_rejected_source_is_not_kept(self, manager):
        manager.load_dict({"treepick": {"logging": {"level": "DEBUG"}}})

        with pytest.raises(ConfigError):
            manager.load_dict({"treepick": {"walker": {"follow_symlinks": "sometimes"}}})

        assert manager.get(ConfigKey.LOGGING_LEVEL) == "DEBUG"
        assert manager.get(ConfigKey.WALKER_FOLLOW_SYMLINKS) is True

    def test_list_items_are_checked(self, manager):
        with pytest.raises(ConfigError, match="at index 1"):
            manager.load_dict({"treepick": {"rulesets": {"search_paths": ["/opt/rules", 3]}}})

    def test_section_must_be_mapping(self, manager):
        with pytest.raises(ConfigError, match="Expected dict for treepick.walker"):
            manager.load_dict({"treepick": {"walker": "fast"}})

    def test_single_string_accepted_for_lists(self, manager):
        manager.load_dict({"treepick": {"walker": {"ignored_dirs": "vendor"}}})

        assert manager.get(ConfigKey.WALKER_IGNORED_DIRS) == "vendor"

    def test_unknown_log_level(self, manager):
        with pytest.raises(ConfigError, match="Unknown log level"):
            manager.set(ConfigKey.LOGGING_LEVEL, "LOUD")

    def test_set_rejects_wrong_type(self, manager):
        with pytest.raises(ConfigError, match="treepick.walker.follow_symlinks"):
            manager.set(ConfigKey.WALKER_FOLLOW_SYMLINKS, "sometimes")

        assert manager.get(ConfigKey.WALKER_FOLLOW_SYMLINKS) is True

    def test_invalid_file_names_file(self, manager, temp_dir: Path):
        config_file = temp_dir / "config.yaml"
        config_file.write_text("treepick:\n  walker:\n    respect_gitignore: sometimes\n")

        with pytest.raises(ConfigError, match="Invalid config in .*config.yaml"):
            manager.load_file(str(config_file))

    def test_invalid_environment_fails_construction(self):
        with patch.dict(os.environ, {"TREEPICK_WALKER__FOLLOW_SYMLINKS": "maybe"}):
            with pytest.raises(ConfigError, match="Invalid config in environment"):
                ConfigManager()

    def test_unknown_keys_are_ignored(self, manager):
        manager.load_dict({"treepick": {"walker": {"max_depth": "deep"}}, "other": 1})

        assert manager.get("treepick.walker.max_depth") == "deep"
