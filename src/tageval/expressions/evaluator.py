"""Evaluator for the tageval rule language.

Walks the AST and computes the result against a scope of bound variables.
"""

import dataclasses
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from tageval.expressions.functions import FunctionRegistry
from tageval.expressions.parser import (
    ASTNode,
    ArrayLiteral,
    BinaryOp,
    FunctionCall,
    Identifier,
    IndexAccess,
    LetStatement,
    Literal,
    MemberAccess,
    ObjectLiteral,
    Program,
    UnaryOp,
)

_NUMBER = (int, float, Decimal)


class EvaluationError(Exception):
    """Error during rule execution (not a rule evaluating to false)."""
    pass


def to_bool(value: Any) -> bool:
    """Coerce a rule result to boolean."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, _NUMBER):
        return value != 0
    if isinstance(value, (str, list, tuple, dict, set, frozenset, Mapping)):
        return len(value) > 0
    return True


def _is_number(value: Any) -> bool:
    return isinstance(value, _NUMBER) and not isinstance(value, bool)


class Evaluator:
    """Evaluates an AST against a scope.

    `let` statements write into the scope, so evaluating against a shared
    scope (as `Runtime` does) leaves those bindings behind.

    Usage:
        evaluator = Evaluator({"Count": 5})
        result = evaluator.evaluate(parse("Count > 3"))
    """

    def __init__(self, scope: dict[str, Any]):
        self.scope = scope

    def evaluate(self, node: ASTNode) -> Any:
        """Evaluate an AST node and return the result."""
        method = getattr(self, f"_eval_{type(node).__name__.lower()}", None)
        if method is None:
            raise EvaluationError(f"Unknown node type: {type(node).__name__}")
        return method(node)

    # -------------------------------------------------------------------------
    # Node type evaluators
    # -------------------------------------------------------------------------

    def _eval_program(self, node: Program) -> Any:
        result = None
        for statement in node.statements:
            result = self.evaluate(statement)
        return result

    def _eval_letstatement(self, node: LetStatement) -> Any:
        value = self.evaluate(node.value)
        self.scope[node.name] = value
        return value

    def _eval_literal(self, node: Literal) -> Any:
        return node.value

    def _eval_identifier(self, node: Identifier) -> Any:
        # Unbound names read as null rather than raising.
        return self.scope.get(node.name)

    def _eval_memberaccess(self, node: MemberAccess) -> Any:
        return self._member(self.evaluate(node.object), node.member)

    def _eval_indexaccess(self, node: IndexAccess) -> Any:
        obj = self.evaluate(node.object)
        index = self.evaluate(node.index)

        if obj is None:
            return None
        if isinstance(obj, Mapping):
            return obj.get(index)
        if isinstance(obj, (Sequence, str)):
            if isinstance(index, int) and not isinstance(index, bool):
                if 0 <= index < len(obj):
                    return obj[index]
            return None
        if isinstance(index, str):
            return self._member(obj, index)
        return None

    def _member(self, obj: Any, member: str) -> Any:
        if obj is None:
            return None
        if isinstance(obj, Mapping):
            return obj.get(member)
        if dataclasses.is_dataclass(obj) or hasattr(obj, member):
            return getattr(obj, member, None)
        return None

    def _eval_binaryop(self, node: BinaryOp) -> Any:
        op = node.operator

        # Short-circuit evaluation for logical operators
        if op == "&&":
            if not to_bool(self.evaluate(node.left)):
                return False
            return to_bool(self.evaluate(node.right))

        if op == "||":
            if to_bool(self.evaluate(node.left)):
                return True
            return to_bool(self.evaluate(node.right))

        left = self.evaluate(node.left)
        right = self.evaluate(node.right)

        if op == "==":
            return self._equals(left, right)
        if op == "!=":
            return not self._equals(left, right)
        if op in ("<", "<=", ">", ">="):
            order = self._compare(left, right)
            return {"<": order < 0, "<=": order <= 0, ">": order > 0, ">=": order >= 0}[op]
        if op == "in":
            return self._in(left, right)
        if op == "not in":
            return not self._in(left, right)

        return self._arithmetic(op, left, right)

    def _eval_unaryop(self, node: UnaryOp) -> Any:
        operand = self.evaluate(node.operand)

        if node.operator == "!":
            return not to_bool(operand)

        if operand is None:
            return None
        if _is_number(operand):
            return -operand
        raise EvaluationError(f"Cannot negate non-numeric value: {operand!r}")

    def _eval_functioncall(self, node: FunctionCall) -> Any:
        if not FunctionRegistry.is_registered(node.name):
            raise EvaluationError(f"Unknown function: {node.name}")

        func_def = FunctionRegistry.get(node.name)
        args = [self.evaluate(arg) for arg in node.arguments]

        try:
            return func_def.implementation(*args)
        except Exception as e:
            raise EvaluationError(f"Error calling {node.name}: {e}") from e

    def _eval_arrayliteral(self, node: ArrayLiteral) -> list[Any]:
        return [self.evaluate(elem) for elem in node.elements]

    def _eval_objectliteral(self, node: ObjectLiteral) -> dict[str, Any]:
        return {key: self.evaluate(value) for key, value in node.pairs.items()}

    # -------------------------------------------------------------------------
    # Helper methods
    # -------------------------------------------------------------------------

    def _equals(self, left: Any, right: Any) -> bool:
        if left is None or right is None:
            return left is None and right is None

        if _is_number(left) and _is_number(right):
            return float(left) == float(right)

        if isinstance(left, date) and isinstance(right, date):
            left, right = self._align_dates(left, right)

        return left == right

    def _compare(self, left: Any, right: Any) -> int:
        """Compare two values, returning -1, 0, or 1. Null sorts first."""
        if left is None or right is None:
            if left is None and right is None:
                return 0
            return -1 if left is None else 1

        if _is_number(left) and _is_number(right):
            left, right = float(left), float(right)
        elif isinstance(left, date) and isinstance(right, date):
            left, right = self._align_dates(left, right)
        elif not (isinstance(left, str) and isinstance(right, str)):
            raise EvaluationError(
                f"Cannot compare {type(left).__name__} and {type(right).__name__}"
            )

        try:
            return (left > right) - (left < right)
        except TypeError as e:
            raise EvaluationError(str(e)) from e

    @staticmethod
    def _align_dates(left: date, right: date) -> tuple[date, date]:
        # A plain date compares against the date part of a datetime.
        if isinstance(left, datetime) and not isinstance(right, datetime):
            return left.date(), right
        if isinstance(right, datetime) and not isinstance(left, datetime):
            return left, right.date()
        return left, right

    def _in(self, item: Any, collection: Any) -> bool:
        if collection is None:
            return False
        if isinstance(collection, str):
            return item is not None and str(item) in collection
        if isinstance(collection, (Sequence, Mapping, set, frozenset)):
            try:
                return item in collection
            except TypeError:
                return False
        raise EvaluationError(
            f"'in' operator requires collection, got {type(collection).__name__}"
        )

    def _arithmetic(self, op: str, left: Any, right: Any) -> Any:
        if left is None or right is None:
            return None

        if op == "+" and (isinstance(left, str) or isinstance(right, str)):
            return str(left) + str(right)

        if not (_is_number(left) and _is_number(right)):
            raise EvaluationError(
                f"Cannot apply '{op}' to {type(left).__name__} and {type(right).__name__}"
            )

        if op in ("/", "%") and right == 0:
            raise EvaluationError("Division by zero" if op == "/" else "Modulo by zero")

        try:
            if op == "+":
                return left + right
            if op == "-":
                return left - right
            if op == "*":
                return left * right
            if op == "/":
                return left / right
            if op == "%":
                return left % right
        except TypeError as e:
            # e.g. Decimal mixed with float
            raise EvaluationError(str(e)) from e

        raise EvaluationError(f"Unknown operator: {op}")
