"""Result model for tageval validation runs."""

import sys
from collections.abc import Mapping, Sequence, Set
from dataclasses import dataclass, field
from typing import Any, TextIO

from tageval.nodes import is_record


@dataclass(frozen=True)
class Result:
    """The outcome of evaluating one rule on one field.

    Attributes:
        name: Field name
        value: The resolved field value the rule ran against
        type_name: The field's declared type, as text
        expr: Rule text (after shorthand rewriting for expression rules)
        valid: Whether the rule passed
    """

    name: str
    value: Any
    type_name: str
    expr: str
    valid: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "type": self.type_name,
            "expr": self.expr,
            "valid": self.valid,
        }

    def __str__(self) -> str:
        return format_result(self)


@dataclass(frozen=True)
class ValidationReport:
    """Results of one validation run, in field-visitation order.

    Attributes:
        valid: True if every recorded result is valid (and when none are)
        results: Failed results, plus passing ones when show_successes is set
    """

    valid: bool
    results: list[Result] = field(default_factory=list)

    @classmethod
    def from_results(cls, results: list[Result]) -> "ValidationReport":
        return cls(valid=all(r.valid for r in results), results=results)

    @property
    def failures(self) -> list[Result]:
        return [r for r in self.results if not r.valid]

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "results": [r.to_dict() for r in self.results],
        }


def _element_label(items: Any) -> str:
    names = {describe_type(item) for item in items}
    if len(names) == 1:
        return names.pop()
    return "Any"


def describe_type(value: Any) -> str:
    """Human-readable type label derived from the value's shape."""
    if value is None:
        return "None"
    if is_record(value) or isinstance(value, (str, bytes)):
        return type(value).__name__
    if isinstance(value, Mapping):
        return f"{type(value).__name__}[{_element_label(value.keys())}, {_element_label(value.values())}]"
    if isinstance(value, tuple) and not hasattr(value, "_fields"):
        return f"tuple[{_element_label(value)}, ...]"
    if isinstance(value, (Sequence, Set)):
        return f"{type(value).__name__}[{_element_label(value)}]"
    return type(value).__name__


def format_result(result: Result) -> str:
    status = "ok" if result.valid else "failed"
    return (
        f"'{result.name}' (type: {describe_type(result.value)}) "
        f"item: '{result.value!r}', expr: '{result.expr}'  : {status}"
    )


def print_results(results: list[Result], stream: TextIO | None = None) -> None:
    """Write a "Results:" header and one line per result."""
    stream = stream or sys.stdout
    print("Results:", file=stream)
    for result in results:
        print(format_result(result), file=stream)
