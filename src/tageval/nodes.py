"""Value nodes: the shapes the traversal engine dispatches on.

Every position in a value graph is classified into one NodeKind:

- OPAQUE: datetime-like values; never descended into
- LEAF: numbers, text, bytes, enums and arbitrary objects
- SEQUENCE: lists, tuples, sets, deques and other non-text sequences
- ASSOCIATIVE: mappings
- REFERENCE: None (empty), weak references and addressable handles
- POLYMORPHIC: transparent proxies exposing ``__wrapped__``
- RECORD: dataclass and pydantic model instances, the only tag-bearing kind
"""

import dataclasses
import weakref
from collections import deque
from collections.abc import Mapping, Sequence, Set
from dataclasses import dataclass
from datetime import date, time, timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel

from tageval.access import AddressableHandle

OPAQUE_TYPES = (date, time, timedelta)

_TEXT_TYPES = (str, bytes, bytearray, memoryview)


class NodeKind(Enum):
    LEAF = "leaf"
    SEQUENCE = "sequence"
    ASSOCIATIVE = "associative"
    REFERENCE = "reference"
    POLYMORPHIC = "polymorphic"
    RECORD = "record"
    OPAQUE = "opaque"


@dataclass(frozen=True)
class Node:
    """A position in the traversal.

    Attributes:
        kind: Shape of the value
        value: The value at this position
        addressable: Whether private fields below this position may be read
    """

    kind: NodeKind
    value: Any
    addressable: bool = False


def is_record(value: Any) -> bool:
    """True for dataclass and pydantic model instances (not classes)."""
    if isinstance(value, type):
        return False
    return dataclasses.is_dataclass(value) or isinstance(value, BaseModel)


def classify(value: Any, addressable: bool = False) -> Node:
    """Classify a value into a Node."""
    return Node(_kind_of(value), value, addressable)


def _kind_of(value: Any) -> NodeKind:
    if value is None or isinstance(value, (AddressableHandle, weakref.ReferenceType)):
        return NodeKind.REFERENCE
    if isinstance(value, OPAQUE_TYPES):
        return NodeKind.OPAQUE
    if isinstance(value, (_TEXT_TYPES, Enum, int, float, complex)):
        return NodeKind.LEAF
    if is_record(value):
        return NodeKind.RECORD
    if isinstance(value, Mapping):
        return NodeKind.ASSOCIATIVE
    if isinstance(value, (Sequence, Set, deque)):
        return NodeKind.SEQUENCE
    if _has_wrapped(value):
        return NodeKind.POLYMORPHIC
    return NodeKind.LEAF


def _has_wrapped(value: Any) -> bool:
    try:
        object.__getattribute__(value, "__wrapped__")
    except AttributeError:
        return False
    return True


def unwrap(value: Any) -> Any:
    """Resolve one level of reference or polymorphic wrapping.

    Returns None for an empty reference (None, a dead weak reference).
    Values that are not wrappers are returned unchanged.
    """
    if isinstance(value, AddressableHandle):
        return value.value
    if isinstance(value, weakref.ReferenceType):
        return value()
    if value is not None and not is_record(value) and _kind_of(value) == NodeKind.POLYMORPHIC:
        return object.__getattribute__(value, "__wrapped__")
    return value


class NodeVisitor:
    """Dispatches each Node to ``visit_<kind>``.

    Subclasses must implement a method for every NodeKind.
    """

    def visit(self, node: Node) -> None:
        method = getattr(self, f"visit_{node.kind.value}", None)
        if method is None:
            raise NotImplementedError(
                f"{type(self).__name__} does not handle {node.kind.name} nodes"
            )
        method(node)
