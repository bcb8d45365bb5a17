"""TreePick Rulesets - resolution, loading, workspaces and project type detection."""

from .guesser import RulesetGuesser
from .manager import PREDEFINED_RULESETS_DIR, RulesetManager, RulesetNotFoundError
from .workspace import Workspace, WorkspaceManager, WorkspaceNotFoundError, WorkspaceResolver

__all__ = [
    "RulesetManager",
    "RulesetNotFoundError",
    "RulesetGuesser",
    "PREDEFINED_RULESETS_DIR",
    "Workspace",
    "WorkspaceManager",
    "WorkspaceNotFoundError",
    "WorkspaceResolver",
]
