"""
TreePick Core: Constants and Type Definitions

This module provides system-wide constants, error codes, and the keys used
by ruleset documents and configuration.
"""
from enum import IntEnum
from typing import FrozenSet

# Version information
TREEPICK_VERSION = "1.0.0"


# Error codes (0-9 range)
class ErrorCode(IntEnum):
    """Standardized error codes for TreePick operations."""

    SUCCESS = 0  # Operation completed successfully
    INVALID_INPUT = 1  # Bad ruleset, invalid rule, malformed config
    NOT_FOUND = 2  # Ruleset, file or directory doesn't exist
    PERMISSION_DENIED = 3  # File could not be read
    CONFLICT = 4  # Mutually exclusive options
    DEPENDENCY_ERROR = 5  # Missing external tool (git)
    INTERNAL_ERROR = 6  # Bug in TreePick or failed subprocess
    TIMEOUT = 7  # Operation timed out


class Limits:
    """Resource limits and default values."""

    # Bytes read for the contents_slice field and MIME sniffing
    CONTENTS_SLICE_LENGTH = 256

    # Hash prefix length shown in git change descriptions
    COMMIT_ABBREV_LENGTH = 8

    # Seconds allowed for a single git subprocess
    GIT_TIMEOUT = 30


# Files recognized as images are never selected
IMAGE_EXTENSIONS: FrozenSet[str] = frozenset(
    {"jpg", "jpeg", "png", "gif", "bmp", "svg", "webp", "tiff", "ico"}
)

# Directory basenames pruned by the tree walker
DEFAULT_IGNORED_DIRS: FrozenSet[str] = frozenset(
    {
        ".git",
        ".svn",
        ".hg",
        ".idea",
        ".vscode",
        "__pycache__",
        "node_modules",
        "bower_components",
        ".npm",
        ".yarn",
    }
)

GITIGNORE_FILENAME = ".gitignore"


class RulesetKey:
    """Keys of a ruleset document."""

    RULES = "rules"
    GLOBAL_EXCLUDE_RULES = "globalExcludeRules"
    ALWAYS = "always"
    ALWAYS_INCLUDE = "include"
    ALWAYS_EXCLUDE = "exclude"
    EXTERNAL = "external"

    # Marker that opens an OR group inside a rule set
    OR = "OR"


class RulesetName:
    """Reserved ruleset names."""

    NONE = "none"
    AUTO = "auto"
    DEFAULT = "default"

    # Project-local file used by "auto" before detection runs
    PROJECT_DEFAULT = "ruleset"

    # Names never listed as selectable rulesets
    HIDDEN = ("default", "ruleset", "schema", "workspaces")


RULESET_FILE_SUFFIX = ".json"

# Workspace definitions, next to the project-local rulesets
WORKSPACES_FILENAME = "workspaces.json"


class WorkspaceKey:
    """Keys of a workspaces file and of each workspace in it."""

    WORKSPACES = "workspaces"
    EXTENDS = "extends"


class ConfigKey:
    """Configuration key constants (dotted paths)."""

    ROOT = "treepick"

    RULESETS_PROJECT_DIR = "treepick.rulesets.project_dir"
    RULESETS_SEARCH_PATHS = "treepick.rulesets.search_paths"

    WALKER_IGNORED_DIRS = "treepick.walker.ignored_dirs"
    WALKER_FOLLOW_SYMLINKS = "treepick.walker.follow_symlinks"
    WALKER_RESPECT_GITIGNORE = "treepick.walker.respect_gitignore"

    LOGGING_LEVEL = "treepick.logging.level"
    LOGGING_FILE = "treepick.logging.file"


# Default configuration values
DEFAULT_CONFIG = {
    "treepick": {
        "rulesets": {
            "project_dir": ".treepick",
            "search_paths": [],
        },
        "walker": {
            "ignored_dirs": sorted(DEFAULT_IGNORED_DIRS),
            "follow_symlinks": True,
            "respect_gitignore": True,
        },
        "logging": {
            "level": "INFO",
            "file": None,
        },
    }
}
