"""tageval: validate fields against rules declared in their metadata.

Rules are attached to dataclass fields (``field(metadata=tags(...))``) or
pydantic fields (``Field(json_schema_extra=tags(...))``):
- expr: a boolean rule-language expression; the field's value is bound to
  its own name (``"Total > 5"``, or the shorthand ``"> 5"``)
- regexp: a pattern searched for in the field's text form
- json: a serialization directive (``"name,omitempty"`` or ``"-"``)

Usage:
    from tageval import Option, new_validator, print_results

    validator = new_validator(Option("show_successes", True))
    report = validator.validate(order)
    print_results(report.results)
"""

from tageval.access import AddressableHandle, PrivateAccessor, addressable
from tageval.config import Option, ValidatorOptions
from tageval.errors import (
    AccessError,
    ConfigurationError,
    CycleError,
    MappingError,
    PatternError,
    ScriptError,
    TagEvalError,
)
from tageval.expression import ExpressionEvaluator
from tageval.mapping import DEFAULT_TYPE_MAPPERS, TypeMapper, timestamp_mapper
from tageval.metadata import EXPR_TAG, JSON_TAG, REGEXP_TAG, tags
from tageval.nodes import Node, NodeKind, classify
from tageval.pattern import PatternMatcher
from tageval.results import (
    Result,
    ValidationReport,
    describe_type,
    format_result,
    print_results,
)
from tageval.validator import Validator, new_validator

__all__ = [
    # Validator
    "Option",
    "Validator",
    "ValidatorOptions",
    "new_validator",
    "AddressableHandle",
    "PrivateAccessor",
    "addressable",
    # Tags
    "EXPR_TAG",
    "JSON_TAG",
    "REGEXP_TAG",
    "tags",
    # Results
    "Result",
    "ValidationReport",
    "describe_type",
    "format_result",
    "print_results",
    # Evaluation backends
    "ExpressionEvaluator",
    "PatternMatcher",
    "DEFAULT_TYPE_MAPPERS",
    "TypeMapper",
    "timestamp_mapper",
    # Nodes
    "Node",
    "NodeKind",
    "classify",
    # Errors
    "AccessError",
    "ConfigurationError",
    "CycleError",
    "MappingError",
    "PatternError",
    "ScriptError",
    "TagEvalError",
]
