"""Tag metadata: the rules and serialization directive attached to fields.

Dataclass fields carry tags in ``field(metadata=...)``; pydantic fields carry
them in ``Field(json_schema_extra=...)``:

    @dataclass
    class Order:
        Total: int = field(metadata=tags(expr="> 5", json="total,omitempty"))
        State: str = field(default="", metadata=tags(regexp="^[A-Z]{2}$"))

    class Customer(BaseModel):
        Name: str = Field(json_schema_extra=tags(expr="len(Name) < 10"))
        Notes: str = Field("", exclude=True)   # same as json="-"
"""

import dataclasses
from dataclasses import dataclass
from typing import Any, Mapping

from pydantic import BaseModel

EXPR_TAG = "expr"
REGEXP_TAG = "regexp"
JSON_TAG = "json"

# Leading operators that mark an expression as shorthand for "<field> <op> ...".
_SHORTHAND_PREFIXES = ("<", ">", "=", "!=")


def tags(
    expr: str | None = None,
    regexp: str | None = None,
    json: str | None = None,
) -> dict[str, str]:
    """Build a tag metadata dict, leaving out absent entries."""
    metadata = {EXPR_TAG: expr, REGEXP_TAG: regexp, JSON_TAG: json}
    return {key: value for key, value in metadata.items() if value is not None}


@dataclass(frozen=True)
class SerializationDirective:
    """A parsed ``json`` tag: ``name[,option...]``.

    Attributes:
        name: Serialized name ("" when not given)
        skip: The field is excluded from serialization ("-")
        omit_empty: The "omitempty" option is present
    """

    name: str = ""
    skip: bool = False
    omit_empty: bool = False

    @classmethod
    def parse(cls, text: str | None) -> "SerializationDirective":
        if not text:
            return cls()
        # "-" alone excludes the field; "-," names a field "-".
        if text == "-":
            return cls(name="-", skip=True)
        name, _, options = text.partition(",")
        return cls(name=name, omit_empty="omitempty" in options.split(","))


@dataclass(frozen=True)
class TagMetadata:
    """Rules and directive for one field. Blank rule text counts as absent."""

    expr: str | None = None
    regexp: str | None = None
    directive: SerializationDirective = SerializationDirective()

    @property
    def has_rules(self) -> bool:
        return self.expr is not None or self.regexp is not None

    @classmethod
    def from_mapping(cls, metadata: Mapping[str, Any] | None, skip: bool = False) -> "TagMetadata":
        metadata = metadata or {}
        directive = SerializationDirective.parse(metadata.get(JSON_TAG))
        if skip and not directive.skip:
            directive = SerializationDirective(name="-", skip=True)
        return cls(
            expr=_rule_text(metadata.get(EXPR_TAG)),
            regexp=_rule_text(metadata.get(REGEXP_TAG)),
            directive=directive,
        )


def _rule_text(value: Any) -> str | None:
    if not isinstance(value, str) or not value.strip():
        return None
    return value


@dataclass(frozen=True)
class FieldSpec:
    """One declared field of a record.

    Attributes:
        name: Attribute name, also the variable name rules see
        metadata: Parsed tags
        type_name: The declared type, as text
        private: Name starts with "_" (or is a pydantic private attribute)
    """

    name: str
    metadata: TagMetadata
    type_name: str
    private: bool


def is_exported(name: str) -> bool:
    return not name.startswith("_")


def type_name(annotation: Any) -> str:
    """Render a declared type annotation as text."""
    if annotation is None:
        return "Any"
    if isinstance(annotation, str):
        return annotation
    if isinstance(annotation, type) and not getattr(annotation, "__args__", None):
        return annotation.__name__
    return str(annotation).replace("typing.", "")


def record_fields(record: Any) -> list[FieldSpec]:
    """Declared fields of a dataclass or pydantic model, in declaration order.

    Pydantic private attributes follow the model fields; they carry no tags.
    """
    if isinstance(record, BaseModel):
        return _pydantic_fields(type(record))
    return [
        FieldSpec(
            name=f.name,
            metadata=TagMetadata.from_mapping(f.metadata),
            type_name=type_name(f.type),
            private=not is_exported(f.name),
        )
        for f in dataclasses.fields(record)
    ]


def _pydantic_fields(model: type[BaseModel]) -> list[FieldSpec]:
    specs = []
    for name, info in model.model_fields.items():
        extra = info.json_schema_extra if isinstance(info.json_schema_extra, Mapping) else None
        specs.append(
            FieldSpec(
                name=name,
                metadata=TagMetadata.from_mapping(extra, skip=info.exclude is True),
                type_name=type_name(info.annotation),
                private=not is_exported(name),
            )
        )
    for name in getattr(model, "__private_attributes__", {}):
        specs.append(FieldSpec(name=name, metadata=TagMetadata(), type_name="Any", private=True))
    return specs


def rewrite_shorthand(field_name: str, expr: str) -> str:
    """Expand a bare relational rule into "<field_name> <expr>".

    ``"> 5"`` on field ``Total`` becomes ``"Total > 5"``. A leading ``!``
    only counts when followed by ``=``, so ``"!Flag"`` is left alone.
    """
    if expr.strip().startswith(_SHORTHAND_PREFIXES):
        return f"{field_name} {expr}"
    return expr
