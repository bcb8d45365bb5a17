"""TreePick Rules System.

This module provides the rule language used by rulesets:
- RuleField / FileAttributeExtractor: file attributes a rule can test
- RuleOperator: comparison, pattern, string and shape operators
- Rule / AnyOf / RuleSet: predicates, OR groups and AND groups
- RuleEvaluator: applies a rule to a file
"""

from .evaluator import RuleEvaluator, compare_values
from .fields import FileAttributeExtractor, RuleEvaluationError, RuleField, format_size, is_image
from .operators import RuleOperator
from .patterns import compile_rule_regex, glob_to_regex
from .rule import AnyOf, Rule, RuleSet, RuleTerm, parse_term

__all__ = [
    # Fields
    "RuleField",
    "FileAttributeExtractor",
    "RuleEvaluationError",
    "is_image",
    "format_size",
    # Operators
    "RuleOperator",
    # Patterns
    "glob_to_regex",
    "compile_rule_regex",
    # Rule model
    "Rule",
    "AnyOf",
    "RuleSet",
    "RuleTerm",
    "parse_term",
    # Evaluation
    "RuleEvaluator",
    "compare_values",
]
