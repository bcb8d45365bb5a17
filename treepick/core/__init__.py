"""TreePick Core - Shared utilities.

Constants, validators, configuration and logging used throughout the
TreePick codebase.

Import specific functions from submodules:
    from treepick.core.config import ConfigManager
    from treepick.core.logging import get_logger
    from treepick.core import constants
    from treepick.core import validators
"""

from treepick.core import config, constants, logging, validators

__all__ = [
    "config",
    "constants",
    "logging",
    "validators",
]
