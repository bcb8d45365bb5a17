"""
TreePick Rulesets: Project Type Detection.

Guesses which predefined ruleset suits a project from marker files.
"""

import json
from pathlib import Path
from typing import Callable, List, Tuple, Union

from treepick.core.constants import RulesetName


class RulesetGuesser:
    """Detects the project type of a directory.

    Checks run in order and the first match wins:
    - laravel: an ``artisan`` file plus app/, bootstrap/, config/, database/
    - sveltekit: ``@sveltejs/kit`` in package.json dependencies
    - python: pyproject.toml, setup.py or setup.cfg
    """

    def __init__(self, project_path: Union[str, Path]):
        self.project_path = Path(project_path)
        self._checks: List[Tuple[str, Callable[[], bool]]] = [
            ("laravel", self.is_laravel_project),
            ("sveltekit", self.is_sveltekit_project),
            ("python", self.is_python_project),
        ]

    def guess(self) -> str:
        """Get the name of the ruleset matching the project, or "default"."""
        for name, check in self._checks:
            if check():
                return name
        return RulesetName.DEFAULT

    def is_laravel_project(self) -> bool:
        root = self.project_path
        return (root / "artisan").is_file() and all(
            (root / d).is_dir() for d in ("app", "bootstrap", "config", "database")
        )

    def is_sveltekit_project(self) -> bool:
        package_json = self.project_path / "package.json"
        if not package_json.is_file():
            return False

        try:
            with open(package_json, "r", encoding="utf-8") as f:
                package = json.load(f)
        except (OSError, ValueError):
            return False

        if not isinstance(package, dict):
            return False

        for section in ("dependencies", "devDependencies"):
            deps = package.get(section)
            if isinstance(deps, dict) and "@sveltejs/kit" in deps:
                return True
        return False

    def is_python_project(self) -> bool:
        return any(
            (self.project_path / marker).is_file() for marker in ("pyproject.toml", "setup.py", "setup.cfg")
        )
