"""Per-field rule processing."""

import logging
from collections import deque
from decimal import Decimal
from fractions import Fraction
from typing import Any

from tageval.access import PrivateAccessor
from tageval.config import ValidatorOptions
from tageval.errors import AccessError
from tageval.expression import ExpressionEvaluator
from tageval.metadata import FieldSpec, rewrite_shorthand
from tageval.nodes import is_record, unwrap
from tageval.pattern import PatternMatcher, to_match_text
from tageval.results import Result

logger = logging.getLogger(__name__)

_NUMERIC_TYPES = (int, float, complex, Decimal, Fraction)
_SIZED_TYPES = (str, bytes, bytearray, list, tuple, dict, set, frozenset, deque)


def is_zero_value(value: Any) -> bool:
    """True if `value` is the zero value of a built-in number, text or container.

    Other types have no zero value; their constructors are never called.
    """
    if isinstance(value, _NUMERIC_TYPES):
        return value == 0
    if isinstance(value, _SIZED_TYPES):
        return len(value) == 0
    return False


class TagProcessor:
    """Evaluates the rules attached to a single field.

    Results are appended only for failed rules, or for every rule when
    `show_successes` is set. Evaluation errors propagate to the caller.
    """

    def __init__(
        self,
        options: ValidatorOptions,
        evaluator: ExpressionEvaluator,
        matcher: PatternMatcher,
        accessor: PrivateAccessor | None = None,
    ):
        self.options = options
        self.evaluator = evaluator
        self.matcher = matcher
        self.accessor = accessor

    def process_field(
        self,
        record: Any,
        spec: FieldSpec,
        results: list[Result],
        addressable: bool = False,
    ) -> None:
        tags = spec.metadata
        if not tags.has_rules:
            return

        honor = self.options.honor_serialization_semantics
        if honor and tags.directive.skip:
            return

        logger.debug("Process tag, name: %s type: %s", spec.name, spec.type_name)

        value = unwrap(self._read(record, spec, addressable))
        if value is None:
            return

        if honor and tags.directive.omit_empty and not is_record(value) and is_zero_value(value):
            logger.info("Skip zero value for %s, %r", spec.name, value)
            return

        if tags.expr is not None:
            expr = rewrite_shorthand(spec.name, tags.expr)
            valid = self.evaluator.eval_bool_expr(spec.name, value, expr)
            self._record(results, spec, value, expr, valid)

        if tags.regexp is not None:
            valid = self.matcher.eval_regexp(to_match_text(value), tags.regexp)
            self._record(results, spec, value, tags.regexp, valid)

    def _read(self, record: Any, spec: FieldSpec, addressable: bool) -> Any:
        if not spec.private:
            return getattr(record, spec.name)
        if not addressable or self.accessor is None:
            raise AccessError(
                f"cannot read private field '{spec.name}' of {type(record).__name__}: "
                "validate an addressable root to evaluate rules on private fields",
                field=spec.name,
            )
        value = self.accessor.read(record, spec.name)
        if not self.accessor.is_simple(value):
            logger.debug("Aliasing private field %s (%s)", spec.name, type(value).__name__)
        return value

    def _record(
        self, results: list[Result], spec: FieldSpec, value: Any, expr: str, valid: bool
    ) -> None:
        logger.debug("Result for %r, %s, value %r: %s", expr, spec.name, value, valid)
        if not valid or self.options.show_successes:
            results.append(Result(spec.name, value, spec.type_name, expr, valid))
