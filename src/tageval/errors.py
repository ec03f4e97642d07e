"""Error taxonomy for tageval.

Every error below is terminal for the validation call that raised it:
traversal stops and no partial result list is returned. A rule that
evaluates to false is never an error; it is reported as an invalid Result.
"""


class TagEvalError(Exception):
    """Base class for all tageval errors."""


class ConfigurationError(TagEvalError):
    """Unknown option name or wrong option value type."""


class AccessError(TagEvalError):
    """A private field needs an addressable root, but none was supplied."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class ScriptError(TagEvalError):
    """An expression rule failed to compile or to execute.

    Attributes:
        field: Name of the field whose rule failed
        expression: The expression text (after shorthand rewriting)
        phase: "compile" or "execute"
    """

    def __init__(self, message: str, field: str, expression: str, phase: str):
        self.field = field
        self.expression = expression
        self.phase = phase
        super().__init__(f"{phase} error in rule for '{field}' ({expression!r}): {message}")


class PatternError(TagEvalError):
    """A regexp rule is not a valid pattern."""

    def __init__(self, message: str, pattern: str):
        self.pattern = pattern
        super().__init__(f"invalid pattern {pattern!r}: {message}")


class MappingError(TagEvalError):
    """A custom type mapper produced a snippet that cannot be materialized."""

    def __init__(self, message: str, value_type: type):
        self.value_type = value_type
        super().__init__(f"custom object creation error for {value_type.__name__}: {message}")


class CycleError(TagEvalError):
    """The value graph refers back to a node on the current traversal path."""
