#!/usr/bin/env python3
"""Git-based file filters.

This module narrows a file list using the state of a git repository:
- GitStatusChecker: thin wrapper over the ``git`` command line
- ModifiedFilter: files modified since the last commit
- ChangeFilter: files changed in a commit range (inclusive of the first commit)

Files are matched by their real path relative to the repository root.

Example:
    >>> stage = ChangeFilter("/srv/app", "a1b2c3d4e5", "HEAD")
    >>> stage.describe()
    'Git changes between a1b2c3d4 and HEAD'
"""

import os
import subprocess
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence, Set, Union

from treepick.core.constants import ErrorCode, Limits
from treepick.filters.base import FileEntry, FileFilter


class GitError(Exception):
    """A git command could not be run or failed."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INTERNAL_ERROR):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class GitStatusChecker:
    """Queries a git working tree through the ``git`` executable."""

    def __init__(self, path: Union[str, Path], timeout: int = Limits.GIT_TIMEOUT):
        """Initialize checker.

        Args:
            path: Any directory inside the working tree
            timeout: Seconds allowed per git command
        """
        self.path = Path(path)
        self.timeout = timeout

    def _run(self, *args: str, input_text: Optional[str] = None) -> str:
        """Run a git command and return its stdout.

        Raises:
            GitError: If git is missing, times out, or exits non-zero
        """
        try:
            result = subprocess.run(
                ["git", *args],
                cwd=self.path,
                input=input_text,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise GitError("git executable not found", ErrorCode.DEPENDENCY_ERROR) from e
        except subprocess.TimeoutExpired as e:
            raise GitError(f"git {args[0]} timed out", ErrorCode.TIMEOUT) from e
        except OSError as e:
            raise GitError(f"Failed to run git {args[0]}: {e}") from e

        if result.returncode != 0:
            raise GitError(f"git {' '.join(args)} failed: {result.stderr.strip()}")

        return result.stdout

    def is_git_repository(self) -> bool:
        """Check if the path is inside a git working tree."""
        try:
            return self._run("rev-parse", "--is-inside-work-tree").strip() == "true"
        except GitError:
            return False

    def get_repository_root(self) -> Path:
        """Get the resolved top-level directory of the working tree."""
        return Path(os.path.realpath(self._run("rev-parse", "--show-toplevel").strip()))

    def get_modified_files(self) -> List[str]:
        """Get files modified since the last commit.

        Includes files added, modified or renamed in the index and files
        modified in the working tree. Untracked files are not included.

        Returns:
            Paths relative to the repository root, without duplicates
        """
        output = self._run("status", "--porcelain", "-z")
        entries = output.split("\0")

        files: List[str] = []
        i = 0
        while i < len(entries):
            entry = entries[i]
            i += 1
            if len(entry) < 4:
                continue

            index_status, worktree_status, path = entry[0], entry[1], entry[3:]
            if index_status in "RC":
                # Rename and copy entries are followed by the source path
                i += 1

            if index_status in "AMR" or worktree_status == "M":
                if path not in files:
                    files.append(path)

        return files

    def get_changed_files_between_commits(self, from_commit: str, to_commit: str = "HEAD") -> List[str]:
        """Get files changed from ``from_commit`` (inclusive) to ``to_commit``.

        Raises:
            GitError: If either commit does not exist or the diff fails
        """
        for commit in (from_commit, to_commit):
            try:
                self._run("rev-parse", "--verify", "--quiet", f"{commit}^{{commit}}")
            except GitError as e:
                raise GitError(f"Commit does not exist: {commit}", ErrorCode.NOT_FOUND) from e

        try:
            start = self._run("rev-parse", "--verify", "--quiet", f"{from_commit}^").strip()
        except GitError:
            # Root commit: diff against the empty tree
            start = self._run("hash-object", "-t", "tree", "--stdin", input_text="").strip()

        output = self._run("diff", "--name-only", "-z", start, to_commit)
        return [path for path in output.split("\0") if path]

    def has_changes(self) -> bool:
        """Check if the working tree has any changes, untracked files included."""
        return bool(self._run("status", "--porcelain").strip())


class _GitFilter(FileFilter):
    """Shared repository handling for git-based stages."""

    def __init__(self, base_path: Union[str, Path], checker: Optional[GitStatusChecker] = None):
        """Initialize stage.

        Raises:
            GitError: If base_path is not inside a git repository
        """
        self.base_path = Path(base_path)
        self.checker = checker or GitStatusChecker(self.base_path)

        if not self.checker.is_git_repository():
            raise GitError(f"Not a git repository: {self.base_path}", ErrorCode.INVALID_INPUT)

        self.repo_root = self.checker.get_repository_root()

    def _repo_relative(self, file: Path) -> str:
        real = Path(os.path.realpath(file))
        try:
            return real.relative_to(self.repo_root).as_posix()
        except ValueError:
            return real.as_posix()

    def _keep(self, files: List[FileEntry], selected: Sequence[str]) -> List[FileEntry]:
        wanted: Set[str] = set(selected)
        return [entry for entry in files if self._repo_relative(entry.file) in wanted]


class ModifiedFilter(_GitFilter):
    """Keeps files modified since the last commit."""

    def __init__(self, base_path: Union[str, Path], checker: Optional[GitStatusChecker] = None):
        super().__init__(base_path, checker)
        self._modified: Optional[List[str]] = None

    def get_modified_files(self) -> List[str]:
        if self._modified is None:
            self._modified = self.checker.get_modified_files()
        return self._modified

    def filter(self, files: List[FileEntry], context: Mapping[str, Any]) -> List[FileEntry]:
        modified = self.get_modified_files()
        if not modified:
            return []
        return self._keep(files, modified)

    def should_apply(self, context: Mapping[str, Any]) -> bool:
        # Nothing to narrow to when git reports no modifications
        try:
            return bool(self.get_modified_files())
        except GitError:
            return False

    def describe(self) -> str:
        try:
            count = len(self.get_modified_files())
        except GitError:
            return "Git modified files since last commit"
        return f"Git modified files since last commit ({count} file{'' if count == 1 else 's'})"

    def has_modifications(self) -> bool:
        return self.checker.has_changes()


class ChangeFilter(_GitFilter):
    """Keeps files changed between two commits."""

    def __init__(
        self,
        base_path: Union[str, Path],
        from_commit: str,
        to_commit: str = "HEAD",
        checker: Optional[GitStatusChecker] = None,
    ):
        super().__init__(base_path, checker)
        self.from_commit = from_commit
        self.to_commit = to_commit or "HEAD"
        self._changed: Optional[List[str]] = None

    def get_changed_files(self) -> List[str]:
        if self._changed is None:
            self._changed = self.checker.get_changed_files_between_commits(self.from_commit, self.to_commit)
        return self._changed

    def filter(self, files: List[FileEntry], context: Mapping[str, Any]) -> List[FileEntry]:
        return self._keep(files, self.get_changed_files())

    def describe(self) -> str:
        abbrev = Limits.COMMIT_ABBREV_LENGTH
        return f"Git changes between {self.from_commit[:abbrev]} and {self.to_commit[:abbrev]}"
