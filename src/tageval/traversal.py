"""Recursive traversal of value graphs.

The engine walks depth-first. At every record it hands each visible field to
the TagProcessor and then always descends into the field's value, so tags
nested below a skipped field are still found.

Mapping entries are visited key first, then value, in the mapping's own
iteration order. For insertion-ordered dicts this is stable; for other
mapping types the result order follows whatever order they iterate in.
"""

import logging

from tageval.access import read_raw
from tageval.errors import CycleError
from tageval.metadata import record_fields
from tageval.nodes import Node, NodeKind, NodeVisitor, classify, unwrap
from tageval.processor import TagProcessor
from tageval.results import Result

logger = logging.getLogger(__name__)

_CONTAINER_KINDS = (NodeKind.SEQUENCE, NodeKind.ASSOCIATIVE, NodeKind.RECORD)


class TraversalEngine(NodeVisitor):
    """Walks a value graph and collects Results in visitation order.

    A container or record that is reached again while it is still being
    visited (a cycle) raises CycleError. Shared, acyclic substructures are
    visited once per path that reaches them.
    """

    def __init__(self, processor: TagProcessor):
        self.processor = processor
        self._results: list[Result] = []
        self._path: set[int] = set()

    def traverse(self, node: Node, results: list[Result]) -> None:
        self._results = results
        self._path = set()
        self.visit(node)

    def visit(self, node: Node) -> None:
        if node.kind not in _CONTAINER_KINDS:
            super().visit(node)
            return

        key = id(node.value)
        if key in self._path:
            raise CycleError(f"cycle detected at {type(node.value).__name__} value")
        self._path.add(key)
        try:
            super().visit(node)
        finally:
            self._path.discard(key)

    def _descend(self, value, addressable: bool) -> None:
        self.visit(classify(value, addressable))

    # -------------------------------------------------------------------------
    # Node kinds
    # -------------------------------------------------------------------------

    def visit_leaf(self, node: Node) -> None:
        pass

    def visit_opaque(self, node: Node) -> None:
        pass

    def visit_sequence(self, node: Node) -> None:
        for item in node.value:
            self._descend(item, node.addressable)

    def visit_associative(self, node: Node) -> None:
        for key, value in node.value.items():
            self._descend(key, node.addressable)
            self._descend(value, node.addressable)

    def visit_reference(self, node: Node) -> None:
        target = unwrap(node.value)
        if target is not None:
            self._descend(target, node.addressable)

    def visit_polymorphic(self, node: Node) -> None:
        target = unwrap(node.value)
        if target is not None:
            self._descend(target, node.addressable)

    def visit_record(self, node: Node) -> None:
        record = node.value
        honor = self.processor.options.honor_serialization_semantics
        logger.debug("Incoming record: %s", type(record).__name__)

        for spec in record_fields(record):
            if not (honor and spec.private):
                self.processor.process_field(record, spec, self._results, node.addressable)
            self._descend(read_raw(record, spec.name), node.addressable)
