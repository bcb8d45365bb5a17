#!/usr/bin/env python3
"""Rule model for file selection.

This module provides the building blocks of a ruleset:
- Rule: an immutable (field, operator, value) predicate, validated on creation
- AnyOf: an OR group of rules, true if any rule matches
- RuleSet: an AND group of terms (rules and OR groups)

Example:
    >>> rule_set = RuleSet.from_list([
    ...     ["extension", "oneOf", ["py", "pyi"]],
    ...     ["OR", [["folder", "startsWith", "src"], ["folder", "startsWith", "lib"]]],
    ... ])
    >>> len(rule_set)
    2
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, List, Sequence, Tuple, Union

from treepick.core.constants import RulesetKey
from treepick.core.validators import (
    ValidationError,
    is_human_readable_size,
    is_numeric,
    parse_date,
)
from treepick.rules.fields import RuleField
from treepick.rules.operators import (
    LIST_OPERATORS,
    ORDERING_OPERATORS,
    PATTERN_OPERATORS,
    REGEX_OPERATORS,
    RuleOperator,
)
from treepick.rules.patterns import compile_rule_regex

# Called with a single rule, returns whether it matches the current file
RulePredicate = Callable[["Rule"], bool]


@dataclass(frozen=True)
class Rule:
    """A single (field, operator, value) predicate.

    The value is checked against the operator and field when the rule is
    created, so a bad ruleset fails before any file is visited.
    """

    field: RuleField
    operator: RuleOperator
    value: Any = None

    def __post_init__(self):
        if isinstance(self.value, list):
            # Keep the rule hashable and immutable
            object.__setattr__(self, "value", tuple(self.value))
        self._validate_value()

    @classmethod
    def from_list(cls, data: Sequence[Any]) -> "Rule":
        """Create a rule from its ``[field, operator, value]`` form.

        Raises:
            ValidationError: If the triple is malformed or invalid
        """
        if not isinstance(data, (list, tuple)) or len(data) != 3:
            raise ValidationError(f"Rule must be a [field, operator, value] triple, got {data!r}")

        field, operator, value = data
        if not isinstance(field, str) or not isinstance(operator, str):
            raise ValidationError(f"Rule field and operator must be strings, got {data!r}")

        return cls(RuleField.parse(field), RuleOperator.parse(operator), value)

    def to_list(self) -> List[Any]:
        """Convert the rule back to its ``[field, operator, value]`` form."""
        value = list(self.value) if isinstance(self.value, tuple) else self.value
        return [self.field.value, self.operator.value, value]

    def matches(self, predicate: RulePredicate) -> bool:
        """Evaluate this rule with the given predicate."""
        return predicate(self)

    def _validate_value(self) -> None:
        op = self.operator

        if op in LIST_OPERATORS:
            self._validate_list_value()
        elif op in ORDERING_OPERATORS:
            self._validate_ordering_value()
        elif op in REGEX_OPERATORS:
            self._validate_regex_value()
        elif op in PATTERN_OPERATORS:
            if not isinstance(self.value, str):
                raise ValidationError(f"Operator {op.value} requires a string pattern")
        else:
            self._validate_scalar_value()

        if isinstance(self.value, tuple):
            return

        if self.field == RuleField.SIZE and isinstance(self.value, str):
            if not is_human_readable_size(self.value):
                raise ValidationError(
                    'Size value must be numeric or a valid human-readable size (e.g., "5MB")'
                )
        elif self.field == RuleField.MTIME and isinstance(self.value, str):
            if not is_numeric(self.value) and parse_date(self.value) is None:
                raise ValidationError("Time value must be numeric (timestamp) or a valid date string")

    def _validate_list_value(self) -> None:
        op = self.operator.value
        if not isinstance(self.value, tuple):
            raise ValidationError(f"Operator {op} requires an array value")
        if not self.value:
            raise ValidationError(f"Array value for operator {op} cannot be empty")
        if not all(isinstance(item, str) for item in self.value):
            raise ValidationError(f"All array items for operator {op} must be strings")

    def _validate_ordering_value(self) -> None:
        value = self.value
        if is_numeric(value) or is_human_readable_size(value):
            return
        if self.field == RuleField.MTIME and parse_date(value) is not None:
            return
        raise ValidationError(
            f"Operator {self.operator.value} requires a numeric value or human-readable size"
        )

    def _validate_regex_value(self) -> None:
        if not isinstance(self.value, str):
            raise ValidationError("Regex pattern must be a string")
        try:
            compile_rule_regex(self.value)
        except re.error as e:
            raise ValidationError(f"Invalid regex pattern: {self.value} ({e})") from e

    def _validate_scalar_value(self) -> None:
        value = self.value
        if value is None or isinstance(value, str):
            return
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return
        raise ValidationError(f"Invalid value type for operator {self.operator.value}: {value!r}")


@dataclass(frozen=True)
class AnyOf:
    """OR group: matches if any of its rules matches."""

    rules: Tuple[Rule, ...]

    @classmethod
    def from_list(cls, data: Any) -> "AnyOf":
        """Create an OR group from ``["OR", [[field, op, value], ...]]``."""
        if not isinstance(data, (list, tuple)) or len(data) != 2 or data[0] != RulesetKey.OR:
            raise ValidationError(f'OR group must be ["OR", [rules...]], got {data!r}')
        if not isinstance(data[1], (list, tuple)) or not data[1]:
            raise ValidationError("OR group must contain a non-empty list of rules")

        return cls(tuple(Rule.from_list(rule) for rule in data[1]))

    def to_list(self) -> List[Any]:
        return [RulesetKey.OR, [rule.to_list() for rule in self.rules]]

    def matches(self, predicate: RulePredicate) -> bool:
        return any(rule.matches(predicate) for rule in self.rules)


RuleTerm = Union[Rule, AnyOf]


def is_or_group(data: Any) -> bool:
    """Check if a raw rule-set entry is an ``["OR", [...]]`` group."""
    return isinstance(data, (list, tuple)) and len(data) > 0 and data[0] == RulesetKey.OR


def parse_term(data: Any) -> RuleTerm:
    """Build a Rule or AnyOf from its list form."""
    if is_or_group(data):
        return AnyOf.from_list(data)
    return Rule.from_list(data)


@dataclass(frozen=True)
class RuleSet:
    """AND group of terms: matches if every term matches."""

    terms: Tuple[RuleTerm, ...]

    @classmethod
    def from_list(cls, data: Sequence[Any]) -> "RuleSet":
        """Create a rule set from a list of rules and OR groups.

        Raises:
            ValidationError: If any entry is invalid; the message names its index
        """
        if not isinstance(data, (list, tuple)):
            raise ValidationError(f"Rule set must be a list of rules, got {data!r}")

        terms = []
        for i, entry in enumerate(data):
            try:
                terms.append(parse_term(entry))
            except ValidationError as e:
                raise ValidationError(f"[{i}]: {e.message}", e.error_code) from e
        return cls(tuple(terms))

    def to_list(self) -> List[Any]:
        return [term.to_list() for term in self.terms]

    def matches(self, predicate: RulePredicate) -> bool:
        return all(term.matches(predicate) for term in self.terms)

    def __len__(self) -> int:
        return len(self.terms)

    def __iter__(self):
        return iter(self.terms)
