"""Type mappers: render a Python value as a rule-language snippet.

A type mapper receives a value of one exact type and returns source text
that, when run, produces a stand-in object for that value. The stand-in is
what a rule sees under the field's name. For example, a ``Money`` class can be
exposed to rules as an object literal:

    def money_mapper(m):
        return f'{{"amount": {m.amount}, "currency": "{m.currency}"}}'

    validator.add_type_mapping(Money, money_mapper)
    # Price: Money = field(metadata=tags(expr='Price.currency == "USD"'))
"""

from datetime import datetime
from types import MappingProxyType
from typing import Any, Callable, Mapping

TypeMapper = Callable[[Any], str]


def timestamp_mapper(value: datetime) -> str:
    """Render a datetime as ``fromTimestamp(<epoch milliseconds>)``.

    Naive datetimes are taken as local time. The materialized value is an
    aware UTC datetime with millisecond precision, so it compares cleanly
    against ``now()``.
    """
    milliseconds = int(value.timestamp() * 1000)
    return f"fromTimestamp({milliseconds})"


# Seed list copied into every new Validator. Built once at import, read-only.
DEFAULT_TYPE_MAPPERS: Mapping[type, TypeMapper] = MappingProxyType(
    {datetime: timestamp_mapper}
)
