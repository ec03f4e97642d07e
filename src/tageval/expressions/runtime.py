"""The rule runtime: one global scope plus compile/run primitives.

A Runtime is deliberately small: bind a variable, compile a unit, run a
unit, and materialize a snippet into a value. Binding and running mutate the
runtime's global scope, so a Runtime must not be driven from more than one
thread at a time.
"""

from dataclasses import dataclass
from typing import Any

from tageval.expressions.builtins import register_all_builtins
from tageval.expressions.evaluator import EvaluationError, Evaluator
from tageval.expressions.parser import Program, parse


@dataclass(frozen=True)
class Script:
    """A compiled unit of rule text."""

    source: str
    program: Program


class Runtime:
    """An embedded rule runtime.

    Usage:
        runtime = Runtime()
        runtime.set("Total", 4)
        runtime.run(runtime.compile("Total > 5"))  # False
    """

    def __init__(self) -> None:
        register_all_builtins()
        self.globals: dict[str, Any] = {}

    def set(self, name: str, value: Any) -> None:
        """Bind a global variable."""
        self.globals[name] = value

    def get(self, name: str) -> Any:
        return self.globals.get(name)

    def compile(self, source: str) -> Script:
        """Compile rule text.

        Raises:
            LexerError, ParseError: If the text is not a valid program
        """
        return Script(source, parse(source))

    def run(self, script: Script) -> Any:
        """Execute a compiled unit against the global scope.

        Raises:
            EvaluationError: If execution fails
        """
        try:
            return Evaluator(self.globals).evaluate(script.program)
        except EvaluationError:
            raise
        except Exception as e:
            raise EvaluationError(f"{type(e).__name__}: {e}") from e

    def evaluate(self, source: str) -> Any:
        """Compile and run rule text in one step."""
        return self.run(self.compile(source))

    def materialize(self, snippet: str) -> Any:
        """Turn a rendered snippet into a runtime value.

        Raises:
            LexerError, ParseError, EvaluationError: If the snippet does not
                compile, fails to run, or produces null
        """
        value = self.evaluate(snippet)
        if value is None:
            raise EvaluationError(f"snippet {snippet!r} did not produce a value")
        return value
