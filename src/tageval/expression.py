"""Expression rule evaluation.

The ExpressionEvaluator owns one Runtime, a cache of compiled scripts keyed
by literal rule text, and the type-mapper table used to render values before
they are bound.
"""

import logging
from typing import Any, Mapping

from tageval.errors import MappingError, ScriptError
from tageval.expressions import (
    EvaluationError,
    LexerError,
    ParseError,
    Runtime,
    Script,
    to_bool,
)
from tageval.mapping import TypeMapper

logger = logging.getLogger(__name__)


class ExpressionEvaluator:
    """Evaluates boolean expression rules for single fields.

    Not safe for concurrent use: every evaluation binds the field value in
    the runtime's global scope. Use `copy()` to get an independent
    evaluator per thread.
    """

    def __init__(self, type_mappers: Mapping[type, TypeMapper] | None = None):
        self.runtime = Runtime()
        self.scripts: dict[str, Script] = {}
        self._mappers: dict[type, TypeMapper] = dict(type_mappers or {})

    @property
    def type_mappers(self) -> Mapping[type, TypeMapper]:
        return dict(self._mappers)

    def add_type_mapping(self, type_: type, render: TypeMapper) -> None:
        """Register `render` for values whose type is exactly `type_`."""
        self._mappers[type_] = render

    def copy(self) -> "ExpressionEvaluator":
        """Fresh runtime and empty script cache, same type mappers.

        Compiled scripts are not carried over.
        """
        return ExpressionEvaluator(self._mappers)

    def eval_bool_expr(self, name: str, value: Any, expr: str) -> bool:
        """Bind `value` to `name` and evaluate `expr` as a boolean.

        Raises:
            MappingError: If a registered type mapper's snippet cannot be
                materialized
            ScriptError: If the rule fails to compile or to execute
        """
        render = self._mappers.get(type(value))
        if render is not None:
            value = self._materialize(render, value)

        self.runtime.set(name, value)

        script = self.scripts.get(expr)
        if script is None:
            try:
                script = self.runtime.compile(expr)
            except (LexerError, ParseError) as e:
                raise ScriptError(str(e), name, expr, "compile") from e
            self.scripts[expr] = script
            logger.debug("Compiled rule %r (%d cached)", expr, len(self.scripts))

        try:
            result = self.runtime.run(script)
        except EvaluationError as e:
            raise ScriptError(str(e), name, expr, "execute") from e

        return to_bool(result)

    def _materialize(self, render: TypeMapper, value: Any) -> Any:
        try:
            snippet = render(value)
        except Exception as e:
            raise MappingError(f"{type(e).__name__}: {e}", type(value)) from e
        try:
            return self.runtime.materialize(snippet)
        except (LexerError, ParseError, EvaluationError) as e:
            raise MappingError(str(e), type(value)) from e
