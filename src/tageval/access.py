"""Addressable roots and read-only access to private fields.

A private field (a name starting with ``_``, or a pydantic private
attribute) carrying a rule can only be read through a PrivateAccessor, and
the only way to obtain one is from an AddressableHandle wrapping the root
value handed to `Validator.validate_addressable`:

    ok = validator.validate_addressable(addressable(order)).valid
"""

from decimal import Decimal
from fractions import Fraction
from typing import Any

_SIMPLE_TYPES = (str, bytes, int, float, complex, bool, Decimal, Fraction, type(None))


class PrivateAccessor:
    """Reads private fields without mutating anything.

    Values of simple kinds are immutable and returned as is. Anything else
    is returned as an alias of the stored object; callers treat it as
    read-only and nothing in tageval writes through it.
    """

    def read(self, record: Any, name: str) -> Any:
        return read_raw(record, name)

    @staticmethod
    def is_simple(value: Any) -> bool:
        """True when the value read is an immutable copy rather than an alias."""
        return isinstance(value, _SIMPLE_TYPES)


def read_raw(record: Any, name: str) -> Any:
    """Read a stored field value structurally.

    Pydantic private attributes come from ``__pydantic_private__``; other
    fields bypass any ``__getattribute__`` override on the record.
    """
    private = getattr(record, "__pydantic_private__", None)
    if private is not None and name in private:
        return private[name]
    return object.__getattribute__(record, name)


class AddressableHandle:
    """A reference to a root value that grants private-field access."""

    __slots__ = ("_value",)

    def __init__(self, value: Any):
        self._value = value

    @property
    def value(self) -> Any:
        return self._value

    def accessor(self) -> PrivateAccessor:
        return PrivateAccessor()

    def __repr__(self) -> str:
        return f"addressable({self._value!r})"


def addressable(value: Any) -> AddressableHandle:
    """Wrap a root value for `Validator.validate_addressable`."""
    return AddressableHandle(value)
