"""The Validator facade.

Usage:
    validator = new_validator(Option("show_successes", True))
    report = validator.validate(order)
    if not report.valid:
        print_results(report.failures)

A Validator is not safe for concurrent use: its rule runtime binds field
values in a shared global scope. Give each thread its own `copy()`.
"""

import logging
from typing import Any

from tageval.access import AddressableHandle
from tageval.config import Option, ValidatorOptions
from tageval.errors import AccessError
from tageval.expression import ExpressionEvaluator
from tageval.mapping import DEFAULT_TYPE_MAPPERS, TypeMapper
from tageval.nodes import classify
from tageval.pattern import PatternMatcher
from tageval.processor import TagProcessor
from tageval.results import Result, ValidationReport
from tageval.traversal import TraversalEngine

logger = logging.getLogger(__name__)


class Validator:
    """Traverses values and evaluates the rules tagged on their fields."""

    def __init__(
        self,
        options: ValidatorOptions | None = None,
        evaluator: ExpressionEvaluator | None = None,
        matcher: PatternMatcher | None = None,
    ):
        self.options = options or ValidatorOptions()
        self.evaluator = evaluator or ExpressionEvaluator(DEFAULT_TYPE_MAPPERS)
        self.matcher = matcher or PatternMatcher()

    def add_type_mapping(self, type_: type, render: TypeMapper) -> None:
        """Render values of exactly `type_` with `render` before binding them.

        See `tageval.mapping` for the snippet contract.
        """
        self.evaluator.add_type_mapping(type_, render)

    def copy(self) -> "Validator":
        """An independent Validator with the same options and type mappers.

        The copy gets a fresh runtime and empty script and pattern caches.
        """
        return Validator(self.options, self.evaluator.copy(), self.matcher.copy())

    def validate(self, value: Any) -> ValidationReport:
        """Validate a value of any shape.

        Rules on private fields cannot be evaluated on this path (AccessError);
        use `validate_addressable` for that.

        Raises:
            TagEvalError: On access, script, pattern, mapping or cycle errors.
                A failing rule is not an error.
        """
        return self._run(value, accessor_from=None)

    def validate_addressable(self, handle: AddressableHandle) -> ValidationReport:
        """Validate the value behind an addressable handle.

        Rules on private fields are evaluated through a read-only accessor.

        Raises:
            AccessError: If `handle` is not an AddressableHandle
        """
        if not isinstance(handle, AddressableHandle):
            raise AccessError(
                f"{type(handle).__name__} value is not addressable: "
                "wrap the root with tageval.addressable()"
            )
        return self._run(handle, accessor_from=handle)

    def _run(self, root: Any, accessor_from: AddressableHandle | None) -> ValidationReport:
        # Bindings live for one call; compiled scripts are kept.
        self.evaluator.runtime.globals.clear()
        accessor = accessor_from.accessor() if accessor_from is not None else None
        processor = TagProcessor(self.options, self.evaluator, self.matcher, accessor)
        results: list[Result] = []
        TraversalEngine(processor).traverse(classify(root, accessor is not None), results)
        report = ValidationReport.from_results(results)
        logger.debug(
            "Validated %s: valid=%s, %d result(s)",
            type(root).__name__,
            report.valid,
            len(results),
        )
        return report


def new_validator(*options: Option) -> Validator:
    """Create a Validator from name/value options.

    Raises:
        ConfigurationError: Unknown option name or non-bool value
    """
    return Validator(ValidatorOptions.from_options(options))
