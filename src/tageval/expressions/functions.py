"""Function registry for the tageval rule language.

Functions are callable from rules (e.g., `len(Name) < 10`, `Due > now()`).
Each function is registered with metadata for documentation.

The registry is process-wide and meant to be populated once at startup
(see `register_all_builtins`); rule evaluation only reads it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable


class FunctionCategory(Enum):
    """Categories for organizing functions in documentation."""

    STRING = "string"
    DATE = "date"
    MATH = "math"
    COLLECTION = "collection"
    LOGIC = "logic"


@dataclass
class FunctionParameter:
    """Definition of a function parameter.

    Attributes:
        name: Parameter name
        type: Expected type ("string", "number", "date", "any", "array", etc.)
        description: Human-readable description
        required: Whether this parameter is required
        variadic: If True, this parameter accepts multiple values
    """

    name: str
    type: str
    description: str
    required: bool = True
    variadic: bool = False


@dataclass
class FunctionDefinition:
    """Complete definition of a rule function.

    Attributes:
        name: Function name as used in rules
        description: Human-readable description
        category: Category for documentation organization
        parameters: List of parameter definitions
        return_type: Type of the return value
        implementation: The Python callable
        examples: Example rules using this function
    """

    name: str
    description: str
    category: FunctionCategory
    parameters: list[FunctionParameter]
    return_type: str
    implementation: Callable[..., Any]
    examples: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "parameters": [
                {
                    "name": p.name,
                    "type": p.type,
                    "description": p.description,
                    "required": p.required,
                    "variadic": p.variadic,
                }
                for p in self.parameters
            ],
            "returnType": self.return_type,
            "examples": self.examples,
        }


class FunctionRegistry:
    """Registry for rule functions.

    Example:
        FunctionRegistry.register(FunctionDefinition(
            name="len",
            description="Returns length of string or array",
            ...
        ))

        FunctionRegistry.call("len", "hello")  # Returns 5
    """

    _functions: dict[str, FunctionDefinition] = {}

    @classmethod
    def register(cls, func_def: FunctionDefinition) -> None:
        """Register (or replace) a function definition."""
        cls._functions[func_def.name] = func_def

    @classmethod
    def get(cls, name: str) -> FunctionDefinition:
        """Get a function definition by name.

        Raises:
            ValueError: If function is not registered
        """
        if name not in cls._functions:
            raise ValueError(f"Unknown function: {name}")
        return cls._functions[name]

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name in cls._functions

    @classmethod
    def call(cls, name: str, *args: Any) -> Any:
        return cls.get(name).implementation(*args)

    @classmethod
    def list_all(cls) -> list[FunctionDefinition]:
        return list(cls._functions.values())

    @classmethod
    def list_by_category(cls, category: FunctionCategory) -> list[FunctionDefinition]:
        return [f for f in cls._functions.values() if f.category == category]

    @classmethod
    def export_documentation(cls) -> dict[str, Any]:
        """Export the registry grouped by category."""
        by_category: dict[str, list[dict[str, Any]]] = {}
        for func_def in cls._functions.values():
            by_category.setdefault(func_def.category.value, []).append(func_def.to_dict())
        return {
            "functions": {name: f.to_dict() for name, f in cls._functions.items()},
            "byCategory": by_category,
        }

    @classmethod
    def clear(cls) -> None:
        """Clear all registrations. Primarily for testing."""
        cls._functions.clear()
