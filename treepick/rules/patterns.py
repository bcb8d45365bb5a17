#!/usr/bin/env python3
r"""Pattern translation for the glob and regex rule operators.

Glob patterns are translated to anchored regular expressions:
- ``*`` matches within one path segment (never ``/``)
- ``?`` matches one character other than ``/``
- ``**/`` matches zero or more leading directories
- ``/**`` at the end matches everything below a directory
- ``[abc]`` / ``[!abc]`` character classes and ``{a,b}`` alternation

Regex values may be written bare (``\.py$``) or delimited with flags
(``/\.py$/i``).

Example:
    >>> glob_to_regex("**/*.md").match("docs/readme.md") is not None
    True
    >>> glob_to_regex("*.md").match("docs/readme.md") is None
    True
"""

import re
from functools import lru_cache
from typing import Pattern

# Delimiters accepted around a regex value, as in /pattern/flags
_REGEX_DELIMITERS = "/#~!@%|+"

_REGEX_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
    "u": 0,  # str patterns are unicode already
}


@lru_cache(maxsize=512)
def glob_to_regex(pattern: str, case_sensitive: bool = True) -> Pattern:
    """Translate a glob pattern into a compiled, anchored regex.

    Args:
        pattern: Glob pattern (e.g., "*.py", "src/**/*.ts", "*.{js,ts}")
        case_sensitive: Whether matching is case-sensitive

    Returns:
        Compiled regex that must match the whole value
    """
    # Normalize path separators
    pattern = pattern.replace("\\", "/")

    parts = []
    brace_depth = 0
    i = 0
    n = len(pattern)

    while i < n:
        c = pattern[i]

        if c == "/" and pattern[i:] == "/**":
            # Trailing /** matches the directory itself and everything below
            parts.append("(?:/.*)?")
            break

        if c == "*":
            if pattern.startswith("**", i):
                starts_segment = i == 0 or pattern[i - 1] == "/"
                if starts_segment and pattern.startswith("/", i + 2):
                    # **/ matches path/ or nothing
                    parts.append("(?:.*/)?")
                    i += 3
                else:
                    parts.append(".*")
                    i += 2
            else:
                parts.append("[^/]*")
                i += 1
            continue

        if c == "?":
            parts.append("[^/]")
        elif c == "[":
            end = pattern.find("]", i + 2)
            if end == -1:
                parts.append(re.escape(c))
            else:
                body = pattern[i + 1 : end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                parts.append("[" + body.replace("\\", "\\\\") + "]")
                i = end + 1
                continue
        elif c == "{":
            brace_depth += 1
            parts.append("(?:")
        elif c == "}" and brace_depth:
            brace_depth -= 1
            parts.append(")")
        elif c == "," and brace_depth:
            parts.append("|")
        else:
            parts.append(re.escape(c))

        i += 1

    # Unbalanced braces are treated literally
    regex = "".join(parts)
    if brace_depth:
        return glob_to_regex(pattern.replace("{", "[{]"), case_sensitive)

    flags = 0 if case_sensitive else re.IGNORECASE
    return re.compile(r"(?s:" + regex + r")\Z", flags)


def glob_matches(pattern: str, value: str) -> bool:
    """Check if value matches a glob pattern in full."""
    return glob_to_regex(pattern).match(value) is not None


@lru_cache(maxsize=512)
def compile_rule_regex(value: str) -> Pattern:
    """Compile a regex rule value.

    A value wrapped in matching delimiters with only flag letters after the
    closing delimiter (``/\\.php$/i``) is unwrapped and its flags applied.
    Anything else is compiled as a plain Python pattern.

    Args:
        value: Regex value from a rule

    Returns:
        Compiled pattern

    Raises:
        re.error: If the pattern does not compile
    """
    if len(value) >= 2 and value[0] in _REGEX_DELIMITERS:
        end = value.rfind(value[0])
        modifiers = value[end + 1 :]
        if end > 0 and all(m in _REGEX_FLAGS for m in modifiers):
            flags = 0
            for modifier in modifiers:
                flags |= _REGEX_FLAGS[modifier]
            return re.compile(value[1:end], flags)

    return re.compile(value)
