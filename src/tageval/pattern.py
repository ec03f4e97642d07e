"""Regexp rule evaluation."""

import re
from typing import Any

from tageval.errors import PatternError


def to_match_text(value: Any) -> str:
    """Text a regexp rule is matched against.

    Strings pass through, booleans become ``true``/``false``, plain integers
    become decimal text; anything else uses ``str()``, so a custom
    ``__str__`` is honored.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int) and type(value).__str__ is int.__str__:
        return "%d" % value
    return str(value)


class PatternMatcher:
    """Compiles and caches regexp rules by pattern text.

    Matching is a search: the pattern may match anywhere in the text unless
    it carries its own ``^``/``$`` anchors.
    """

    def __init__(self) -> None:
        self.patterns: dict[str, re.Pattern[str]] = {}

    def copy(self) -> "PatternMatcher":
        return PatternMatcher()

    def eval_regexp(self, value: str, pattern: str) -> bool:
        """Return True if `pattern` occurs in `value`.

        Raises:
            PatternError: If `pattern` does not compile
        """
        compiled = self.patterns.get(pattern)
        if compiled is None:
            try:
                compiled = re.compile(pattern)
            except re.error as e:
                raise PatternError(str(e), pattern) from e
            self.patterns[pattern] = compiled
        return compiled.search(value) is not None
