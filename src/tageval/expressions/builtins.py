"""Built-in functions for the tageval rule language.

Call `register_all_builtins()` once at startup; `Runtime` does so when it is
created, and re-registration simply replaces the same definitions.

Categories:
- String: len, isEmpty, trim, upper, lower, startsWith, endsWith, matches
- Date: now, today, fromTimestamp, year, month, day, daysBetween
- Math: abs, round, floor, ceil, min, max, sum
- Collection: size, contains, first, last, keys
- Logic: coalesce, if
"""

import math
import re
from collections.abc import Mapping, Sized
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable

from tageval.expressions.functions import (
    FunctionCategory,
    FunctionDefinition,
    FunctionParameter,
    FunctionRegistry,
)


def register_all_builtins() -> None:
    """Register all built-in functions with the FunctionRegistry."""
    _register_string_functions()
    _register_date_functions()
    _register_math_functions()
    _register_collection_functions()
    _register_logic_functions()


def _define(
    name: str,
    description: str,
    category: FunctionCategory,
    parameters: list[FunctionParameter],
    return_type: str,
    implementation: Callable[..., Any],
    *examples: str,
) -> None:
    FunctionRegistry.register(
        FunctionDefinition(
            name=name,
            description=description,
            category=category,
            parameters=parameters,
            return_type=return_type,
            implementation=implementation,
            examples=list(examples),
        )
    )


# -----------------------------------------------------------------------------
# String Functions
# -----------------------------------------------------------------------------


def _len(value: Any) -> int:
    """Return length of a string, array or object; 0 for null."""
    if value is None or not isinstance(value, Sized):
        return 0
    return len(value)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, Sized):
        return len(value) == 0
    return False


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _starts_with(value: str | None, prefix: str) -> bool:
    return value is not None and str(value).startswith(prefix)


def _ends_with(value: str | None, suffix: str) -> bool:
    return value is not None and str(value).endswith(suffix)


def _matches(value: str | None, pattern: str) -> bool:
    """Unanchored regex search, the same semantics as regexp rules."""
    if value is None:
        return False
    return re.search(pattern, str(value)) is not None


def _register_string_functions() -> None:
    text = FunctionParameter("value", "string", "The string to use")
    cat = FunctionCategory.STRING

    _define("len", "Returns length of string, array or object", cat,
            [FunctionParameter("value", "string|array|object", "The value to measure")],
            "number", _len, "len(LastName) < 10", "len(Tags) >= 1")
    _define("isEmpty", "Returns true if value is null, blank, or an empty collection", cat,
            [FunctionParameter("value", "any", "The value to check")],
            "boolean", _is_empty, "!isEmpty(Name)")
    _define("trim", "Removes whitespace from both ends of a string", cat, [text],
            "string", lambda value: _text(value).strip(), 'trim(Name) != ""')
    _define("upper", "Converts string to uppercase", cat, [text],
            "string", lambda value: _text(value).upper(), 'upper(State) == State')
    _define("lower", "Converts string to lowercase", cat, [text],
            "string", lambda value: _text(value).lower(), 'lower(Email) == Email')
    _define("startsWith", "Tests if string starts with prefix", cat,
            [text, FunctionParameter("prefix", "string", "Prefix to check for")],
            "boolean", _starts_with, 'startsWith(Sku, "PRD-")')
    _define("endsWith", "Tests if string ends with suffix", cat,
            [text, FunctionParameter("suffix", "string", "Suffix to check for")],
            "boolean", _ends_with, 'endsWith(Email, "@example.com")')
    _define("matches", "Tests if a regex pattern occurs anywhere in the string", cat,
            [text, FunctionParameter("pattern", "string", "Regex pattern")],
            "boolean", _matches, 'matches(Sku, "^[A-Z]{3}-[0-9]{4}$")')


# -----------------------------------------------------------------------------
# Date Functions
# -----------------------------------------------------------------------------


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _from_timestamp(milliseconds: int | float) -> datetime:
    """Return the UTC datetime for milliseconds since the Unix epoch."""
    return datetime.fromtimestamp(milliseconds / 1000, tz=timezone.utc)


def _part(attribute: str) -> Callable[[date | None], int | None]:
    def extract(d: date | None) -> int | None:
        if d is None:
            return None
        return getattr(d, attribute)

    return extract


def _days_between(start: date | None, end: date | None) -> int | None:
    if start is None or end is None:
        return None
    if isinstance(start, datetime):
        start = start.date()
    if isinstance(end, datetime):
        end = end.date()
    return (end - start).days


def _register_date_functions() -> None:
    cat = FunctionCategory.DATE
    when = FunctionParameter("date", "date", "The date")

    _define("now", "Returns current datetime in UTC", cat, [], "datetime", _now,
            "Expires > now()")
    _define("today", "Returns the current date", cat, [], "date", date.today,
            "Start <= today()")
    _define("fromTimestamp", "Returns the UTC datetime for epoch milliseconds", cat,
            [FunctionParameter("milliseconds", "number", "Milliseconds since the epoch")],
            "datetime", _from_timestamp, "Created >= fromTimestamp(0)")
    _define("year", "Extracts the year", cat, [when], "number", _part("year"),
            "year(Born) >= 1900")
    _define("month", "Extracts the month (1-12)", cat, [when], "number", _part("month"),
            "month(Due) == month(now())")
    _define("day", "Extracts the day of month (1-31)", cat, [when], "number", _part("day"),
            "day(Due) <= 28")
    _define("daysBetween", "Returns number of days between two dates", cat,
            [FunctionParameter("start", "date", "Start date"),
             FunctionParameter("end", "date", "End date")],
            "number", _days_between, "daysBetween(Start, today()) < 30")


# -----------------------------------------------------------------------------
# Math Functions
# -----------------------------------------------------------------------------


def _round(value: float | Decimal | None, decimals: int = 0) -> float | Decimal | None:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value.quantize(Decimal(10) ** -decimals, rounding=ROUND_HALF_UP)
    return round(value, decimals)


def _nullable(func: Callable[[Any], Any]) -> Callable[[Any], Any]:
    return lambda value: None if value is None else func(value)


def _values(args: tuple[Any, ...]) -> list[Any]:
    """Flatten a single array argument and drop nulls."""
    if len(args) == 1 and isinstance(args[0], (list, tuple, set, frozenset)):
        args = tuple(args[0])
    return [a for a in args if a is not None]


def _min(*args: Any) -> Any:
    values = _values(args)
    return min(values) if values else None


def _max(*args: Any) -> Any:
    values = _values(args)
    return max(values) if values else None


def _sum(*args: Any) -> Any:
    return sum(_values(args))


def _register_math_functions() -> None:
    cat = FunctionCategory.MATH
    number = FunctionParameter("value", "number", "The number")
    numbers = FunctionParameter("values", "number", "Numbers or one array", variadic=True)

    _define("abs", "Returns absolute value", cat, [number], "number", _nullable(abs),
            "abs(Delta) < 0.01")
    _define("round", "Rounds to the given number of decimals", cat,
            [number, FunctionParameter("decimals", "number", "Decimal places", required=False)],
            "number", _round, "round(Price, 2) == Price")
    _define("floor", "Rounds down to an integer", cat, [number], "number",
            _nullable(math.floor), "floor(Ratio) == 0")
    _define("ceil", "Rounds up to an integer", cat, [number], "number",
            _nullable(math.ceil), "ceil(Ratio) == 1")
    _define("min", "Returns the smallest value", cat, [numbers], "number", _min,
            "min(Scores) >= 0")
    _define("max", "Returns the largest value", cat, [numbers], "number", _max,
            "max(Scores) <= 100")
    _define("sum", "Returns the sum of the values", cat, [numbers], "number", _sum,
            "sum(Points) == 10")


# -----------------------------------------------------------------------------
# Collection Functions
# -----------------------------------------------------------------------------


def _contains(collection: Any, item: Any) -> bool:
    if collection is None:
        return False
    if isinstance(collection, str):
        return item is not None and str(item) in collection
    return item in collection


def _first(collection: Any) -> Any:
    items = list(collection or ())
    return items[0] if items else None


def _last(collection: Any) -> Any:
    items = list(collection or ())
    return items[-1] if items else None


def _keys(mapping: Mapping[Any, Any] | None) -> list[Any]:
    if not isinstance(mapping, Mapping):
        return []
    return list(mapping.keys())


def _register_collection_functions() -> None:
    cat = FunctionCategory.COLLECTION
    collection = FunctionParameter("collection", "array", "The collection")

    _define("size", "Returns number of items in a collection", cat, [collection],
            "number", _len, "size(Items) > 0")
    _define("contains", "Tests if a collection or string contains an item", cat,
            [collection, FunctionParameter("item", "any", "The item to look for")],
            "boolean", _contains, 'contains(Location, "TX")')
    _define("first", "Returns the first item", cat, [collection], "any", _first,
            "first(Items) > 0")
    _define("last", "Returns the last item", cat, [collection], "any", _last,
            "last(Items) > 0")
    _define("keys", "Returns the keys of an object", cat,
            [FunctionParameter("object", "object", "The object")],
            "array", _keys, '"green" in keys(Counts)')


# -----------------------------------------------------------------------------
# Logic Functions
# -----------------------------------------------------------------------------


def _coalesce(*args: Any) -> Any:
    for arg in args:
        if arg is not None:
            return arg
    return None


def _if_then(condition: Any, true_value: Any, false_value: Any = None) -> Any:
    return true_value if condition else false_value


def _register_logic_functions() -> None:
    cat = FunctionCategory.LOGIC

    _define("coalesce", "Returns the first non-null argument", cat,
            [FunctionParameter("values", "any", "Candidate values", variadic=True)],
            "any", _coalesce, "coalesce(Nickname, Name) != null")
    _define("if", "Returns one of two values depending on a condition", cat,
            [FunctionParameter("condition", "boolean", "The condition"),
             FunctionParameter("then", "any", "Value when true"),
             FunctionParameter("else", "any", "Value when false", required=False)],
            "any", _if_then, 'if(Kind == "box", Volume, 0) < 10')
