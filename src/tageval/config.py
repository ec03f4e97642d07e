"""Validator configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml

from tageval.errors import ConfigurationError

# Accepted spellings -> attribute name.
_OPTION_NAMES = {
    "honor_serialization_semantics": "honor_serialization_semantics",
    "honorSerializationSemantics": "honor_serialization_semantics",
    "show_successes": "show_successes",
    "showSuccesses": "show_successes",
}

_ENV_PREFIX = "TAGEVAL_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Option:
    """A single name/value construction option."""

    name: str
    value: Any


@dataclass(frozen=True)
class ValidatorOptions:
    """Options fixed for the lifetime of a Validator.

    Attributes:
        honor_serialization_semantics: Skip private fields and "-" fields, and
            elide omitempty zero values, as a serializer would
        show_successes: Report passing results too, not just failures
    """

    honor_serialization_semantics: bool = True
    show_successes: bool = False

    @classmethod
    def from_options(cls, options: Iterable[Option]) -> ValidatorOptions:
        """Apply name/value options over the defaults.

        Raises:
            ConfigurationError: Unknown option name or non-bool value
        """
        result = cls()
        for option in options:
            attribute = _OPTION_NAMES.get(option.name)
            if attribute is None:
                raise ConfigurationError(f"unknown option: {option.name}")
            if not isinstance(option.value, bool):
                raise ConfigurationError(f"bool value expected for option {option.name}")
            result = replace(result, **{attribute: option.value})
        return result

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ValidatorOptions:
        return cls.from_options(Option(name, value) for name, value in data.items())

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ValidatorOptions:
        """Create options from environment variables.

        Reads TAGEVAL_HONOR_SERIALIZATION_SEMANTICS and TAGEVAL_SHOW_SUCCESSES
        (true/false, 1/0, yes/no, on/off). Unset variables keep defaults.
        """
        environ = os.environ if environ is None else environ
        options = []
        for f in fields(cls):
            key = _ENV_PREFIX + f.name.upper()
            raw = environ.get(key)
            if raw is None:
                continue
            text = raw.strip().lower()
            if text not in _TRUE | _FALSE:
                raise ConfigurationError(f"{key}: expected a boolean, got {raw!r}")
            options.append(Option(f.name, text in _TRUE))
        return cls.from_options(options)

    @classmethod
    def from_yaml(cls, path: Path | str) -> ValidatorOptions:
        """Load options from a YAML mapping, optionally under a ``tageval:`` key."""
        with open(path, encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"{path}: expected a mapping of options")
        if "tageval" in data:
            data = data["tageval"] or {}
            if not isinstance(data, Mapping):
                raise ConfigurationError(f"{path}: 'tageval' must be a mapping of options")
        return cls.from_mapping(data)
