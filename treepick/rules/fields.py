"""
TreePick Rules: File Fields.

This module defines the attributes a rule can test and extracts their values
from files on disk. All path-derived fields come from one substrate: the
file's path relative to the base path, with forward slashes and no trailing
separator.

Example:
    >>> extractor = FileAttributeExtractor("/srv/app")
    >>> extractor.get_field_value(RuleField.EXTENSION, Path("/srv/app/src/main.py"))
    'py'
"""

import mimetypes
import os
import posixpath
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Union

from treepick.core.constants import IMAGE_EXTENSIONS, ErrorCode, Limits
from treepick.core.validators import ValidationError


class RuleField(Enum):
    """File attributes available to rules."""

    FOLDER = "folder"
    PATH = "path"
    DIRNAME = "dirname"
    BASENAME = "basename"
    EXTENSION = "extension"
    FILENAME = "filename"
    CONTENTS = "contents"
    CONTENTS_SLICE = "contents_slice"
    SIZE = "size"
    MTIME = "mtime"
    MIME_TYPE = "mimeType"

    @classmethod
    def parse(cls, name: str) -> "RuleField":
        """Look up a field by its ruleset name.

        Raises:
            ValidationError: If the name is not a known field
        """
        try:
            return cls(name)
        except ValueError:
            raise ValidationError(f"Unknown rule field: {name!r}") from None


class RuleEvaluationError(Exception):
    """A field value could not be read from a file."""

    def __init__(self, message: str, path: str, error_code: ErrorCode = ErrorCode.PERMISSION_DENIED):
        self.message = message
        self.path = path
        self.error_code = error_code
        super().__init__(message)


def split_basename(basename: str):
    """Split a basename into (filename, extension) at its last dot.

    ``archive.tar.gz`` -> ("archive.tar", "gz"); ``Makefile`` -> ("Makefile", "");
    ``.env`` -> ("", "env").
    """
    if "." not in basename:
        return basename, ""
    filename, _, extension = basename.rpartition(".")
    return filename, extension


class FileAttributeExtractor:
    """Computes rule field values for files under a base path."""

    def __init__(self, base_path: Union[str, Path]):
        """Initialize extractor.

        Args:
            base_path: Directory relative paths are computed against
        """
        self.base_path = Path(os.path.realpath(base_path))

    def relative_path(self, file: Union[str, Path]) -> str:
        """Get the file's path relative to the base path.

        The walked path is tried first so that followed symlinks keep their
        in-tree location; the resolved path is used when the walked path is
        outside the base.

        Args:
            file: File path (absolute, or relative to the base path)

        Returns:
            Forward-slash relative path without trailing separator
        """
        path = Path(file)
        if not path.is_absolute():
            path = self.base_path / path

        for candidate in (Path(os.path.abspath(path)), Path(os.path.realpath(path))):
            try:
                relative = candidate.relative_to(self.base_path)
            except ValueError:
                continue
            return relative.as_posix().rstrip("/")

        return path.as_posix().rstrip("/")

    def get_field_value(self, field: RuleField, file: Union[str, Path]) -> Any:
        """Get the value of a field for a file.

        Args:
            field: Field to extract
            file: File to extract from

        Returns:
            The field value (str for path and content fields, int for size/mtime)

        Raises:
            RuleEvaluationError: If the file cannot be read or stat'ed
        """
        return _EXTRACTORS[field](self, Path(file))

    def _folder(self, file: Path) -> str:
        return posixpath.dirname(self.relative_path(file))

    def _path(self, file: Path) -> str:
        return self.relative_path(file)

    def _dirname(self, file: Path) -> str:
        return posixpath.dirname(self.relative_path(file)) or "."

    def _basename(self, file: Path) -> str:
        return posixpath.basename(self.relative_path(file))

    def _extension(self, file: Path) -> str:
        return split_basename(self._basename(file))[1]

    def _filename(self, file: Path) -> str:
        return split_basename(self._basename(file))[0]

    def _contents(self, file: Path) -> str:
        return self._read(file).decode("utf-8", errors="replace")

    def _contents_slice(self, file: Path) -> str:
        return self._read(file, Limits.CONTENTS_SLICE_LENGTH).decode("utf-8", errors="ignore")

    def _size(self, file: Path) -> int:
        return self._stat(file).st_size

    def _mtime(self, file: Path) -> int:
        return int(self._stat(file).st_mtime)

    def _mime_type(self, file: Path) -> str:
        mime_type, _ = mimetypes.guess_type(file.name)
        if mime_type:
            return mime_type

        head = self._read(file, Limits.CONTENTS_SLICE_LENGTH)
        return "application/octet-stream" if b"\x00" in head else "text/plain"

    def _read(self, file: Path, length: int = -1) -> bytes:
        """Read a file's bytes, all of them or a prefix."""
        try:
            with open(file, "rb") as f:
                return f.read(length)
        except FileNotFoundError as e:
            raise RuleEvaluationError(
                f"Failed to read contents of file: {file}", str(file), ErrorCode.NOT_FOUND
            ) from e
        except OSError as e:
            raise RuleEvaluationError(f"Failed to read contents of file: {file} ({e})", str(file)) from e

    def _stat(self, file: Path) -> os.stat_result:
        try:
            return file.stat()
        except FileNotFoundError as e:
            raise RuleEvaluationError(f"Failed to stat file: {file}", str(file), ErrorCode.NOT_FOUND) from e
        except OSError as e:
            raise RuleEvaluationError(f"Failed to stat file: {file} ({e})", str(file)) from e


_EXTRACTORS: Dict[RuleField, Callable[[FileAttributeExtractor, Path], Any]] = {
    RuleField.FOLDER: FileAttributeExtractor._folder,
    RuleField.PATH: FileAttributeExtractor._path,
    RuleField.DIRNAME: FileAttributeExtractor._dirname,
    RuleField.BASENAME: FileAttributeExtractor._basename,
    RuleField.EXTENSION: FileAttributeExtractor._extension,
    RuleField.FILENAME: FileAttributeExtractor._filename,
    RuleField.CONTENTS: FileAttributeExtractor._contents,
    RuleField.CONTENTS_SLICE: FileAttributeExtractor._contents_slice,
    RuleField.SIZE: FileAttributeExtractor._size,
    RuleField.MTIME: FileAttributeExtractor._mtime,
    RuleField.MIME_TYPE: FileAttributeExtractor._mime_type,
}

_missing_fields = set(RuleField) - set(_EXTRACTORS)
if _missing_fields:
    raise ImportError(f"No extractor for rule fields: {sorted(f.value for f in _missing_fields)}")


def is_image(file: Union[str, Path]) -> bool:
    """Check if a file is an image based on its extension."""
    return split_basename(Path(file).name)[1].lower() in IMAGE_EXTENSIONS


def format_size(num_bytes: int) -> str:
    """Convert a size in bytes to a human-readable string.

    Args:
        num_bytes: Size in bytes

    Returns:
        Size with binary units, e.g. "1.5 KB"
    """
    units = ["B", "KB", "MB", "GB", "TB"]
    value = float(max(num_bytes, 0))
    power = 0
    while value >= 1024 and power < len(units) - 1:
        value /= 1024
        power += 1

    text = f"{value:.1f}".rstrip("0").rstrip(".")
    return f"{text} {units[power]}"
