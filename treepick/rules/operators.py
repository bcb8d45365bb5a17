"""Rule operators.

Every operator has a base form; most also have a negated ``notX`` form. A
negated operator is evaluated as its base and the result inverted.
"""

from enum import Enum
from typing import FrozenSet

from treepick.core.validators import ValidationError


class RuleOperator(Enum):
    """Comparison operators available to rules."""

    EQUALS = "="
    NOT_EQUALS = "!="
    GREATER_THAN = ">"
    GREATER_THAN_EQUALS = ">="
    LESS_THAN = "<"
    LESS_THAN_EQUALS = "<="
    ONE_OF = "oneOf"
    NOT_ONE_OF = "notOneOf"
    REGEX = "regex"
    NOT_REGEX = "notRegex"
    GLOB = "glob"
    FNMATCH = "fnmatch"
    CONTAINS = "contains"
    NOT_CONTAINS = "notContains"
    STARTS_WITH = "startsWith"
    NOT_STARTS_WITH = "notStartsWith"
    ENDS_WITH = "endsWith"
    NOT_ENDS_WITH = "notEndsWith"
    STARTS_WITH_ANY = "startsWithAny"
    ENDS_WITH_ANY = "endsWithAny"
    CONTAINS_ANY = "containsAny"
    IS_ASCII = "isAscii"
    IS_JSON = "isJson"
    IS_ULID = "isUlid"
    IS_URL = "isUrl"
    IS_UUID = "isUuid"

    @classmethod
    def parse(cls, name: str) -> "RuleOperator":
        """Look up an operator by its ruleset name.

        Raises:
            ValidationError: If the name is not a known operator
        """
        try:
            return cls(name)
        except ValueError:
            raise ValidationError(f"Unknown rule operator: {name!r}") from None

    @property
    def is_negation(self) -> bool:
        """True for the ``notX`` forms."""
        return self.value.startswith("not")

    @property
    def base(self) -> "RuleOperator":
        """The un-negated operator (``notStartsWith`` -> ``startsWith``)."""
        if not self.is_negation:
            return self

        name = self.value[3:]
        return RuleOperator.parse(name[:1].lower() + name[1:])

    @property
    def is_comparison(self) -> bool:
        """True for operators that use the three-way compare."""
        return self in COMPARISON_OPERATORS

    @property
    def requires_list(self) -> bool:
        """True for operators whose value is a list of strings."""
        return self in LIST_OPERATORS


COMPARISON_OPERATORS: FrozenSet[RuleOperator] = frozenset(
    {
        RuleOperator.EQUALS,
        RuleOperator.NOT_EQUALS,
        RuleOperator.GREATER_THAN,
        RuleOperator.GREATER_THAN_EQUALS,
        RuleOperator.LESS_THAN,
        RuleOperator.LESS_THAN_EQUALS,
    }
)

ORDERING_OPERATORS: FrozenSet[RuleOperator] = frozenset(
    {
        RuleOperator.GREATER_THAN,
        RuleOperator.GREATER_THAN_EQUALS,
        RuleOperator.LESS_THAN,
        RuleOperator.LESS_THAN_EQUALS,
    }
)

LIST_OPERATORS: FrozenSet[RuleOperator] = frozenset(
    {
        RuleOperator.ONE_OF,
        RuleOperator.NOT_ONE_OF,
        RuleOperator.STARTS_WITH_ANY,
        RuleOperator.ENDS_WITH_ANY,
        RuleOperator.CONTAINS_ANY,
    }
)

PATTERN_OPERATORS: FrozenSet[RuleOperator] = frozenset(
    {RuleOperator.GLOB, RuleOperator.FNMATCH}
)

REGEX_OPERATORS: FrozenSet[RuleOperator] = frozenset(
    {RuleOperator.REGEX, RuleOperator.NOT_REGEX}
)
