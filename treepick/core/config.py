#!/usr/bin/env python3
"""Layered configuration for TreePick.

Settings are looked up from the highest-precedence source that defines them:
- Compiled defaults (``DEFAULT_CONFIG``)
- A YAML user file
- ``TREEPICK_<SECTION>__<KEY>`` environment variables
- Runtime values set by the caller

Every write is checked against ``SETTINGS``, so a badly typed setting is
reported as a ConfigError when it is loaded rather than when the walker or
the ruleset manager first reads it. A source that fails the check is not
kept.

Example:
    >>> config = ConfigManager()
    >>> config.load_file("~/.config/treepick/config.yaml")
    >>> config.get(ConfigKey.WALKER_FOLLOW_SYMLINKS)
    True
"""

import copy
import os
import threading
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from treepick.core.constants import DEFAULT_CONFIG, ConfigKey, ErrorCode


class ConfigSource(Enum):
    """Configuration source precedence levels."""

    COMPILED_DEFAULTS = 1  # Lowest precedence
    USER_CONFIG = 2
    ENVIRONMENT = 3
    RUNTIME = 4  # Highest precedence


class ConfigError(Exception):
    """Configuration error."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


# key -> (accepted types, item type for lists)
# A single string is accepted where a list is expected; readers wrap it.
SETTINGS: Dict[str, Tuple[Tuple[type, ...], Optional[type]]] = {
    ConfigKey.RULESETS_PROJECT_DIR: ((str,), None),
    ConfigKey.RULESETS_SEARCH_PATHS: ((list, str), str),
    ConfigKey.WALKER_IGNORED_DIRS: ((list, str), str),
    ConfigKey.WALKER_FOLLOW_SYMLINKS: ((bool,), None),
    ConfigKey.WALKER_RESPECT_GITIGNORE: ((bool,), None),
    ConfigKey.LOGGING_LEVEL: ((str,), None),
    ConfigKey.LOGGING_FILE: ((str,), None),
}

LOG_LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def check_setting(key: str, value: Any) -> None:
    """Check one setting value.

    None always passes and means "not set". Unknown keys are not checked.

    Raises:
        ConfigError: If the value has the wrong type
    """
    if value is None or key not in SETTINGS:
        return

    types, item_type = SETTINGS[key]
    if not isinstance(value, types):
        expected = " or ".join(t.__name__ for t in types)
        raise ConfigError(f"Expected {expected} for {key}, got {type(value).__name__}")

    if item_type is not None and isinstance(value, list):
        for i, item in enumerate(value):
            if not isinstance(item, item_type):
                raise ConfigError(
                    f"Expected {item_type.__name__} items for {key}, got {type(item).__name__} at index {i}"
                )

    if key == ConfigKey.LOGGING_LEVEL and value.upper() not in LOG_LEVEL_NAMES:
        raise ConfigError(f"Unknown log level for {key}: {value!r}")


def _lookup(data: Any, key: str) -> Any:
    for part in key.split("."):
        if not isinstance(data, dict) or part not in data:
            return None
        data = data[part]
    return data


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = _merge(result[key], value)
        else:
            result[key] = value
    return result


class ConfigManager:
    """Thread-safe layered configuration manager."""

    ENV_PREFIX = "TREEPICK_"
    ENV_SEPARATOR = "__"

    def __init__(self, config_file: Optional[str] = None, load_environment: bool = True):
        """Initialize configuration manager.

        Args:
            config_file: Optional YAML file loaded as the user config
            load_environment: Read TREEPICK_* environment variables

        Raises:
            ConfigError: If the file or the environment holds invalid settings
        """
        self._lock = threading.RLock()
        self._sources: Dict[ConfigSource, Dict[str, Any]] = {
            ConfigSource.COMPILED_DEFAULTS: copy.deepcopy(DEFAULT_CONFIG),
        }

        if config_file:
            self.load_file(config_file)

        if load_environment:
            self._load_environment()

    def load_file(self, file_path: str, source: ConfigSource = ConfigSource.USER_CONFIG) -> None:
        """Load a YAML file into a source.

        Args:
            file_path: Path to YAML config file
            source: Source level the file replaces

        Raises:
            ConfigError: If the file is missing, unreadable, not a mapping,
                or holds invalid settings
        """
        path = Path(file_path).expanduser()

        if not path.exists():
            raise ConfigError(f"Config file not found: {file_path}", ErrorCode.NOT_FOUND)

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"YAML parse error in {file_path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Error loading config {file_path}: {e}", ErrorCode.PERMISSION_DENIED) from e

        if not isinstance(data, dict):
            raise ConfigError(f"Invalid config format in {file_path}")

        self._replace(source, data, origin=file_path)

    def load_dict(self, data: Dict[str, Any], source: ConfigSource = ConfigSource.RUNTIME) -> None:
        """Replace a source with a copy of a dictionary.

        Raises:
            ConfigError: If the dictionary holds invalid settings
        """
        self._replace(source, copy.deepcopy(data))

    def _load_environment(self) -> None:
        """Load TREEPICK_SECTION__KEY=value variables.

        A double underscore separates nesting levels so snake_case keys
        survive, e.g. TREEPICK_WALKER__FOLLOW_SYMLINKS=false.
        """
        found: Dict[str, Any] = {}

        for name, raw in os.environ.items():
            if not name.startswith(self.ENV_PREFIX):
                continue

            parts = name[len(self.ENV_PREFIX):].lower().split(self.ENV_SEPARATOR)
            if not all(parts):
                continue

            section = found
            for part in parts[:-1]:
                section = section.setdefault(part, {})
                if not isinstance(section, dict):
                    break
            else:
                section[parts[-1]] = self._parse_env_value(raw)

        if found:
            self._replace(ConfigSource.ENVIRONMENT, {"treepick": found}, origin="environment")

    def _parse_env_value(self, value: str) -> Any:
        """Parse an environment string into bool, int, float, list or str."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        for convert in (int, float):
            try:
                return convert(value)
            except ValueError:
                pass

        if "," in value:
            return [item.strip() for item in value.split(",") if item.strip()]

        return value

    def _replace(self, source: ConfigSource, data: Dict[str, Any], origin: Optional[str] = None) -> None:
        with self._lock:
            previous = self._sources.get(source)
            self._sources[source] = data
            try:
                self.validate()
            except ConfigError as e:
                if previous is None:
                    del self._sources[source]
                else:
                    self._sources[source] = previous
                if origin is not None:
                    raise ConfigError(f"Invalid config in {origin}: {e.message}", e.error_code) from e
                raise

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dotted key from the highest source defining it."""
        with self._lock:
            for source in sorted(self._sources, key=lambda s: s.value, reverse=True):
                value = _lookup(self._sources[source], key)
                if value is not None:
                    return value
            return default

    def set(self, key: str, value: Any, source: ConfigSource = ConfigSource.RUNTIME) -> None:
        """Set a value by dotted key.

        Raises:
            ConfigError: If the value has the wrong type for a known setting
        """
        check_setting(key, value)

        with self._lock:
            section = self._sources.setdefault(source, {})
            parts = key.split(".")
            for part in parts[:-1]:
                section = section.setdefault(part, {})
            section[parts[-1]] = value

    def get_all(self) -> Dict[str, Any]:
        """Get the configuration of all sources merged by precedence."""
        with self._lock:
            merged: Dict[str, Any] = {}
            for source in sorted(self._sources, key=lambda s: s.value):
                merged = _merge(merged, self._sources[source])
            return merged

    def validate(self) -> None:
        """Check the merged configuration against ``SETTINGS``.

        Raises:
            ConfigError: If a section is not a mapping or a setting has the
                wrong type
        """
        merged = self.get_all()

        for key in SETTINGS:
            parts = key.split(".")
            section: Any = merged
            for depth, part in enumerate(parts[:-1]):
                section = section.get(part)
                if section is None:
                    break
                if not isinstance(section, dict):
                    location = ".".join(parts[: depth + 1])
                    raise ConfigError(f"Expected dict for {location}, got {type(section).__name__}")
            else:
                check_setting(key, section.get(parts[-1]))
