#!/usr/bin/env python3
"""Ignore-aware directory tree walker.

This module provides the traversal that feeds ruleset filtering:
- Directory basenames in an injected ignore set are pruned
- Dot entries are skipped unless asked for
- Nested .gitignore files apply to their own subtree
- Symlinked directories are followed unless they lead back into the
  directory currently being walked

Pruning happens before descent, so nothing below an ignored directory is
ever listed.

Example:
    >>> for path in FilteredDirIterator("/srv/app"):
    ...     print(path)
    /srv/app/README.md
    /srv/app/src
    /srv/app/src/main.py
"""

import os
import re
from pathlib import Path
from typing import AbstractSet, Iterator, List, Optional, Set, Tuple, Union

import pathspec

from treepick.core.constants import DEFAULT_IGNORED_DIRS, GITIGNORE_FILENAME, ConfigKey
from treepick.core.logging import Logger, get_logger

# (directory the spec was read from, compiled spec)
_IgnoreSpec = Tuple[Path, pathspec.GitIgnoreSpec]


class FilteredDirIterator:
    """Walks a directory tree, yielding every entry that survives pruning.

    Each iteration starts a fresh walk. Entries are yielded parent-first;
    order within a directory is whatever ``os.scandir`` returns.
    """

    def __init__(
        self,
        root: Union[str, Path],
        ignored_dirs: AbstractSet[str] = DEFAULT_IGNORED_DIRS,
        skip_dots: bool = True,
        follow_symlinks: bool = True,
        respect_gitignore: bool = True,
        logger: Optional[Logger] = None,
    ):
        """Initialize iterator.

        Args:
            root: Directory to walk
            ignored_dirs: Basenames that are never yielded or entered
            skip_dots: Skip entries whose name starts with "."
            follow_symlinks: Descend into symlinked directories
            respect_gitignore: Honor .gitignore files found during the walk
            logger: Logger for ignore-file problems
        """
        self.root = Path(root)
        self.ignored_dirs = frozenset(ignored_dirs)
        self.skip_dots = skip_dots
        self.follow_symlinks = follow_symlinks
        self.respect_gitignore = respect_gitignore
        self._logger = logger or get_logger()

    @classmethod
    def from_config(cls, root: Union[str, Path], config, logger: Optional[Logger] = None) -> "FilteredDirIterator":
        """Create an iterator using the walker settings of a ConfigManager."""
        ignored = config.get(ConfigKey.WALKER_IGNORED_DIRS, DEFAULT_IGNORED_DIRS)
        if isinstance(ignored, str):
            ignored = [ignored]

        return cls(
            root,
            ignored_dirs=frozenset(ignored),
            follow_symlinks=bool(config.get(ConfigKey.WALKER_FOLLOW_SYMLINKS, True)),
            respect_gitignore=bool(config.get(ConfigKey.WALKER_RESPECT_GITIGNORE, True)),
            logger=logger,
        )

    def __iter__(self) -> Iterator[Path]:
        return self._walk(self.root, [], {os.path.realpath(self.root)})

    def files(self) -> Iterator[Path]:
        """Yield only the regular files of the walk."""
        for path in self:
            if path.is_file():
                yield path

    def _walk(self, directory: Path, specs: List[_IgnoreSpec], ancestors: Set[str]) -> Iterator[Path]:
        """Walk one directory.

        ``ancestors`` holds the resolved paths of the directories on the
        current descent path only. A link back into that chain is yielded
        but not entered; a link to a directory seen elsewhere in the tree
        is walked again under its own path.
        """
        if self.respect_gitignore:
            spec = self._load_gitignore(directory)
            if spec is not None:
                specs = specs + [(directory, spec)]

        try:
            with os.scandir(directory) as it:
                entries = list(it)
        except OSError as e:
            self._logger.warning("Cannot list directory", path=str(directory), error=str(e))
            return

        for entry in entries:
            if self._is_pruned_name(entry.name):
                continue

            path = Path(entry.path)
            is_dir = self._is_dir(entry)

            if specs and self._is_gitignored(path, is_dir, specs):
                continue

            yield path

            if not is_dir:
                continue

            real = os.path.realpath(path)
            if real in ancestors:
                self._logger.debug("Not following directory cycle", path=str(path), target=real)
                continue

            ancestors.add(real)
            try:
                yield from self._walk(path, specs, ancestors)
            finally:
                ancestors.discard(real)

    def _is_pruned_name(self, name: str) -> bool:
        if name in self.ignored_dirs:
            return True
        return self.skip_dots and name.startswith(".")

    def _is_dir(self, entry: os.DirEntry) -> bool:
        try:
            return entry.is_dir(follow_symlinks=self.follow_symlinks)
        except OSError:
            return False

    def _is_gitignored(self, path: Path, is_dir: bool, specs: List[_IgnoreSpec]) -> bool:
        for base, spec in specs:
            relative = path.relative_to(base).as_posix()
            if is_dir:
                relative += "/"
            if spec.match_file(relative):
                return True
        return False

    def _load_gitignore(self, directory: Path) -> Optional[pathspec.GitIgnoreSpec]:
        """Read and compile the .gitignore of a directory, if it has one."""
        ignore_file = directory / GITIGNORE_FILENAME
        if not ignore_file.is_file():
            return None

        try:
            with open(ignore_file, "r", encoding="utf-8", errors="replace") as f:
                return pathspec.GitIgnoreSpec.from_lines(f.read().splitlines())
        except (OSError, ValueError, TypeError, re.error) as e:
            self._logger.warning("Skipping unusable ignore file", path=str(ignore_file), error=str(e))
            return None
