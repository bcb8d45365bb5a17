#!/usr/bin/env python3
"""Rule evaluation against files on disk.

The evaluator extracts the rule's field from a file and applies the rule's
operator:
- Comparisons (=, !=, >, >=, <, <=) use a three-way compare that understands
  date strings and human-readable sizes
- oneOf, regex, glob and fnmatch test membership and patterns
- isAscii, isJson, isUrl, isUuid and isUlid validate the value's shape
- contains/startsWith/endsWith and their *Any forms test substrings
- notX operators invert the result of X

Example:
    >>> evaluator = RuleEvaluator("/srv/app")
    >>> rule = Rule(RuleField.SIZE, RuleOperator.LESS_THAN, "100k")
    >>> evaluator.evaluate(rule, Path("/srv/app/README.md"))
    True
"""

import fnmatch
import json
import re
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union
from urllib.parse import urlparse

from treepick.core.validators import (
    is_human_readable_size,
    is_numeric,
    parse_date,
    parse_human_size,
)
from treepick.rules.fields import FileAttributeExtractor, RuleEvaluationError
from treepick.rules.operators import RuleOperator
from treepick.rules.patterns import compile_rule_regex, glob_matches
from treepick.rules.rule import Rule

# Versions 1 to 8 with the RFC 4122 variant; the nil and max UUIDs do not match
_UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-8][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$", re.IGNORECASE
)
_ULID_PATTERN = re.compile(r"^[0-7][0-9A-HJKMNP-TV-Z]{25}$")

__all__ = ["RuleEvaluator", "RuleEvaluationError", "compare_values"]


def _as_text(value: Any) -> str:
    """Render a field value for string operators."""
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _as_number(value: Any) -> float:
    return float(value.strip()) if isinstance(value, str) else float(value)


def _sign(difference: float) -> int:
    return (difference > 0) - (difference < 0)


def compare_values(field_value: Any, rule_value: Any) -> int:
    """Three-way compare a field value with a rule value.

    Order of interpretation:
    1. numeric field vs. date string: compare as timestamps
    2. numeric field vs. size string ("1.5k", "2MiB"): compare as bytes
    3. both numeric: compare as numbers
    4. otherwise compare as strings

    Args:
        field_value: Value extracted from the file
        rule_value: Value from the rule

    Returns:
        -1, 0 or 1
    """
    field_is_number = isinstance(field_value, (int, float)) and not isinstance(field_value, bool)

    if field_is_number and isinstance(rule_value, str):
        when = parse_date(rule_value)
        if when is not None:
            return _sign(field_value - when.timestamp())

        if is_human_readable_size(rule_value):
            return _sign(field_value - parse_human_size(rule_value))

    if is_numeric(field_value) and is_numeric(rule_value):
        return _sign(_as_number(field_value) - _as_number(rule_value))

    left, right = _as_text(field_value), _as_text(rule_value)
    return (left > right) - (left < right)


def _is_ascii(value: str) -> bool:
    return bool(value) and all(0x20 <= ord(c) <= 0x7E for c in value)


def _is_json(value: str) -> bool:
    if not value:
        return False
    try:
        json.loads(value)
    except ValueError:
        return False
    return True


def _is_url(value: str) -> bool:
    if not value or any(c.isspace() for c in value):
        return False
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return bool(parsed.scheme and parsed.netloc)


def _contains(haystack: str, needle: str) -> bool:
    return bool(needle) and needle in haystack


def _starts_with(haystack: str, needle: str) -> bool:
    return bool(needle) and haystack.startswith(needle)


def _ends_with(haystack: str, needle: str) -> bool:
    return bool(needle) and haystack.endswith(needle)


def _any_of(check: Callable[[str, str], bool]) -> Callable[[Any, Any], bool]:
    def handler(field_value: Any, rule_value: Any) -> bool:
        text = _as_text(field_value)
        return any(check(text, _as_text(item)) for item in rule_value)

    return handler


def _single(check: Callable[[str, str], bool]) -> Callable[[Any, Any], bool]:
    def handler(field_value: Any, rule_value: Any) -> bool:
        return check(_as_text(field_value), _as_text(rule_value))

    return handler


def _shape(check: Callable[[str], bool]) -> Callable[[Any, Any], bool]:
    def handler(field_value: Any, rule_value: Any) -> bool:
        return check(_as_text(field_value))

    return handler


# Handlers for every base operator: (field_value, rule_value) -> bool
_HANDLERS: Dict[RuleOperator, Callable[[Any, Any], bool]] = {
    RuleOperator.EQUALS: lambda a, b: compare_values(a, b) == 0,
    RuleOperator.NOT_EQUALS: lambda a, b: compare_values(a, b) != 0,
    RuleOperator.GREATER_THAN: lambda a, b: compare_values(a, b) > 0,
    RuleOperator.GREATER_THAN_EQUALS: lambda a, b: compare_values(a, b) >= 0,
    RuleOperator.LESS_THAN: lambda a, b: compare_values(a, b) < 0,
    RuleOperator.LESS_THAN_EQUALS: lambda a, b: compare_values(a, b) <= 0,
    RuleOperator.ONE_OF: lambda a, b: _as_text(a) in b,
    RuleOperator.REGEX: lambda a, b: compile_rule_regex(b).search(_as_text(a)) is not None,
    RuleOperator.GLOB: lambda a, b: glob_matches(b, _as_text(a)),
    RuleOperator.FNMATCH: lambda a, b: fnmatch.fnmatchcase(_as_text(a), b),
    RuleOperator.CONTAINS: _single(_contains),
    RuleOperator.STARTS_WITH: _single(_starts_with),
    RuleOperator.ENDS_WITH: _single(_ends_with),
    RuleOperator.CONTAINS_ANY: _any_of(_contains),
    RuleOperator.STARTS_WITH_ANY: _any_of(_starts_with),
    RuleOperator.ENDS_WITH_ANY: _any_of(_ends_with),
    RuleOperator.IS_ASCII: _shape(_is_ascii),
    RuleOperator.IS_JSON: _shape(_is_json),
    RuleOperator.IS_URL: _shape(_is_url),
    RuleOperator.IS_UUID: _shape(lambda v: _UUID_PATTERN.match(v) is not None),
    RuleOperator.IS_ULID: _shape(lambda v: _ULID_PATTERN.match(v) is not None),
}

_missing_operators = {op.base for op in RuleOperator} - set(_HANDLERS)
if _missing_operators:
    raise ImportError(
        f"No handler for rule operators: {sorted(op.value for op in _missing_operators)}"
    )


class RuleEvaluator:
    """Evaluates rules against files under a base path."""

    def __init__(self, base_path: Union[str, Path], extractor: Optional[FileAttributeExtractor] = None):
        """Initialize evaluator.

        Args:
            base_path: Directory relative paths are computed against
            extractor: Optional shared attribute extractor
        """
        self.extractor = extractor or FileAttributeExtractor(base_path)

    def evaluate(self, rule: Rule, file: Union[str, Path]) -> bool:
        """Check whether a file satisfies a rule.

        Args:
            rule: Rule to evaluate
            file: File to test

        Returns:
            True if the rule matches

        Raises:
            RuleEvaluationError: If a needed file attribute cannot be read
        """
        field_value = self.extractor.get_field_value(rule.field, file)
        result = _HANDLERS[rule.operator.base](field_value, rule.value)

        return not result if rule.operator.is_negation else result

    def predicate(self, file: Union[str, Path]) -> Callable[[Rule], bool]:
        """Bind a file, returning a rule -> bool callable for term evaluation."""
        return lambda rule: self.evaluate(rule, file)
