"""Shared pytest fixtures for TreePick tests."""
import json
import logging
import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Any, Dict, Generator

import pytest

from treepick.core.logging import Logger


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests (resolved, so symlinked tmp dirs compare equal)."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(os.path.realpath(tmpdir))


@pytest.fixture
def project_dir(temp_dir: Path) -> Path:
    """Create a small project tree with a mix of files."""
    project = temp_dir / "project"
    project.mkdir()

    (project / "README.md").write_text("# Project\n\nSome documentation")
    (project / "main.py").write_text("print('hello')\n")
    (project / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n")

    (project / "src").mkdir()
    (project / "src" / "app.py").write_text("def main():\n    return 42\n")
    (project / "src" / "util.js").write_text("export const x = 1;\n")

    (project / "docs").mkdir()
    (project / "docs" / "guide.md").write_text("# Guide\n")

    (project / "node_modules").mkdir()
    (project / "node_modules" / "lib.js").write_text("module.exports = {};\n")

    (project / ".env").write_text("SECRET=1\n")

    return project


@pytest.fixture
def write_ruleset():
    """Write a ruleset document as JSON and return its path."""

    def _write(path: Path, data: Dict[str, Any]) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data))
        return path

    return _write


class ListHandler(logging.Handler):
    """Handler that keeps formatted messages in memory."""

    def __init__(self):
        super().__init__()
        self.messages = []

    def emit(self, record):
        self.messages.append((record.levelname, record.getMessage()))


@pytest.fixture
def log_handler() -> ListHandler:
    return ListHandler()


@pytest.fixture
def logger(log_handler: ListHandler) -> Logger:
    """Logger that records messages instead of printing them."""
    return Logger(name="treepick.test", level="DEBUG", handlers=[log_handler])


def run_git(cwd: Path, *args: str) -> str:
    """Run a git command for test setup."""
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


@pytest.fixture
def git_repo(temp_dir: Path) -> Path:
    """Create a git repository with one commit, or skip if git is missing."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    repo = temp_dir / "repo"
    repo.mkdir()
    run_git(repo, "init", "-q")
    run_git(repo, "config", "user.email", "test@example.com")
    run_git(repo, "config", "user.name", "Test")
    run_git(repo, "config", "commit.gpgsign", "false")

    (repo / "a.txt").write_text("a\n")
    (repo / "b.txt").write_text("b\n")
    run_git(repo, "add", ".")
    run_git(repo, "commit", "-q", "-m", "initial")

    return repo


@pytest.fixture
def git_cmd():
    """Callable running git in a directory: git_cmd(repo, "add", ".")."""
    return run_git
