"""
TreePick Core: Input Validators.

This module provides validation and parsing helpers for rule values and
ruleset documents: numeric values, human-readable sizes, date strings and
the overall document structure.
"""
import math
import re
from datetime import datetime, timedelta
from typing import Any, Optional

from treepick.core.constants import ErrorCode, RulesetKey


class ValidationError(Exception):
    """Base exception for validation errors."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        """Initialize ValidationError.

        Args:
            message: Error message
            error_code: Associated error code
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code


# 1.5k, 10 MB, 2gib, .5Ti
HUMAN_SIZE_PATTERN = re.compile(r"^\s*(\d+\.?\d*|\.\d+)\s*([kmgt]i?b?)?\s*$", re.IGNORECASE)

_UNIT_MULTIPLIERS = {
    "": 1,
    "k": 1000,
    "ki": 1024,
    "m": 1000**2,
    "mi": 1024**2,
    "g": 1000**3,
    "gi": 1024**3,
    "t": 1000**4,
    "ti": 1024**4,
}

_RELATIVE_DATE_PATTERN = re.compile(
    r"^([+-]?\d+)\s*(second|minute|hour|day|week|month|year)s?(\s+ago)?$", re.IGNORECASE
)

_UNIT_SECONDS = {
    "second": 1,
    "minute": 60,
    "hour": 3600,
    "day": 86400,
    "week": 7 * 86400,
    "month": 30 * 86400,
    "year": 365 * 86400,
}


def is_numeric(value: Any) -> bool:
    """Check if value is a finite number or a string holding one.

    Strings use plain decimal notation: digit-group underscores and the
    "nan"/"inf" spellings that ``float()`` accepts are rejected.

    Args:
        value: Value to check

    Returns:
        True if value is numeric (booleans are not)
    """
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, str):
        text = value.strip()
        if not text or "_" in text:
            return False
        try:
            return math.isfinite(float(text))
        except ValueError:
            return False
    return False


def is_human_readable_size(value: Any) -> bool:
    """Check if value is a size string such as "5MB" or "1.5ki".

    Args:
        value: Value to check

    Returns:
        True if value matches the size syntax
    """
    return isinstance(value, str) and HUMAN_SIZE_PATTERN.match(value) is not None


def parse_human_size(value: str) -> float:
    """Convert a human-readable size to bytes.

    Bare k/m/g/t are decimal units, ki/mi/gi/ti binary. A trailing "b" is
    accepted and ignored.

    Args:
        value: Size string

    Returns:
        Size in bytes

    Raises:
        ValidationError: If value is not a size string
    """
    match = HUMAN_SIZE_PATTERN.match(value)
    if match is None:
        raise ValidationError(f"Invalid size: {value!r}")

    number = float(match.group(1))
    unit = (match.group(2) or "").lower()
    if unit.endswith("b"):
        unit = unit[:-1]

    return number * _UNIT_MULTIPLIERS[unit]


def parse_date(value: Any, now: Optional[datetime] = None) -> Optional[datetime]:
    """Parse a date string.

    Accepts ISO 8601 dates and datetimes, the keywords now/today/yesterday/
    tomorrow, and relative offsets such as "3 days ago" or "-2 weeks".
    Purely numeric strings are never dates.

    Args:
        value: Candidate date string
        now: Reference time for relative forms (defaults to current time)

    Returns:
        Parsed datetime, or None if value is not a date
    """
    if not isinstance(value, str) or is_numeric(value):
        return None

    text = value.strip()
    if not text:
        return None

    now = now or datetime.now()
    keyword = text.lower()

    if keyword == "now":
        return now
    if keyword == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if keyword == "yesterday":
        return now.replace(hour=0, minute=0, second=0, microsecond=0) - timedelta(days=1)
    if keyword == "tomorrow":
        return now.replace(hour=0, minute=0, second=0, microsecond=0) + timedelta(days=1)

    relative = _RELATIVE_DATE_PATTERN.match(text)
    if relative:
        amount = int(relative.group(1))
        seconds = amount * _UNIT_SECONDS[relative.group(2).lower()]
        if relative.group(3):
            seconds = -abs(seconds)
        return now + timedelta(seconds=seconds)

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None


def validate_ruleset_document(data: Any) -> bool:
    """Validate the top-level structure of a ruleset document.

    Only shapes are checked here; individual rules are validated when they
    are built.

    Args:
        data: Parsed ruleset document

    Returns:
        True if valid

    Raises:
        ValidationError: If the structure is invalid
    """
    if not isinstance(data, dict):
        raise ValidationError("Ruleset must be a JSON object")

    rules = data.get(RulesetKey.RULES, [])
    if not isinstance(rules, list):
        raise ValidationError(f"'{RulesetKey.RULES}' must be a list of rule sets")
    for i, rule_set in enumerate(rules):
        if not isinstance(rule_set, list):
            raise ValidationError(f"'{RulesetKey.RULES}[{i}]' must be a list of rules")

    excludes = data.get(RulesetKey.GLOBAL_EXCLUDE_RULES, [])
    if not isinstance(excludes, list):
        raise ValidationError(f"'{RulesetKey.GLOBAL_EXCLUDE_RULES}' must be a list of rules")

    always = data.get(RulesetKey.ALWAYS, {})
    if not isinstance(always, dict):
        raise ValidationError(f"'{RulesetKey.ALWAYS}' must be an object")
    for key in (RulesetKey.ALWAYS_INCLUDE, RulesetKey.ALWAYS_EXCLUDE):
        _validate_path_list(always.get(key, []), f"{RulesetKey.ALWAYS}.{key}")

    return True


def _validate_path_list(paths: Any, location: str) -> None:
    """Validate a list of literal relative paths."""
    if not isinstance(paths, list):
        raise ValidationError(f"'{location}' must be a list of paths")
    for path in paths:
        if not isinstance(path, str):
            raise ValidationError(f"'{location}' entries must be strings, got {path!r}")

