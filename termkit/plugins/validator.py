"""Config validator - checks a plugin's config against its declared schema."""

import logging
from collections.abc import Mapping as MappingABC
from typing import Any, Dict, List, Mapping, Optional

from termkit.plugins.errors import ConfigError, MissingRequiredOption, TypeMismatch, UnknownOption
from termkit.plugins.manifest import ConfigOption

logger = logging.getLogger(__name__)


def type_name(value: Any) -> str:
    """Semantic type name of a config value, in schema vocabulary."""
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, MappingABC):
        return "table"
    if isinstance(value, (list, tuple)):
        return "array"
    if callable(value):
        return "function"
    return type(value).__name__


def matches_type(value: Any, expected: str) -> bool:
    actual = type_name(value)
    if expected == "any":
        return True
    if expected == "number":
        return actual in ("number", "integer")
    return actual == expected


class ConfigValidator:
    """Validates config mappings against ``{key: ConfigOption}`` schemas.

    Keys absent from the schema are accepted unless ``strict`` is set.
    """

    def __init__(self, strict: bool = False):
        self.strict = strict

    def validate(
        self,
        config: Mapping[str, Any],
        schema: Mapping[str, ConfigOption],
        plugin_id: Optional[str] = None,
    ) -> None:
        """Raise the first schema violation found.

        Raises:
            MissingRequiredOption: A required key is absent (or None)
            TypeMismatch: A present value has the wrong semantic type
            UnknownOption: Strict mode and a key is not in the schema
        """
        errors = self.collect_errors(config, schema, plugin_id)
        if errors:
            raise errors[0]

    def collect_errors(
        self,
        config: Mapping[str, Any],
        schema: Mapping[str, ConfigOption],
        plugin_id: Optional[str] = None,
    ) -> List[ConfigError]:
        """Get every schema violation, in schema order."""
        errors: List[ConfigError] = []

        for key, option in schema.items():
            value = config.get(key)
            if value is None:
                if option.required:
                    errors.append(MissingRequiredOption(key, plugin_id))
                continue
            if not matches_type(value, option.type):
                actual = type_name(value)
                # integers are reported as numbers unless the schema asked for an integer
                if actual == "integer" and option.type != "integer":
                    actual = "number"
                errors.append(TypeMismatch(key, option.type, actual, plugin_id))

        if self.strict:
            for key in config:
                if key not in schema:
                    errors.append(UnknownOption(key, plugin_id))

        return errors

    def merged(
        self,
        current: Mapping[str, Any],
        updates: Mapping[str, Any],
        schema: Mapping[str, ConfigOption],
        plugin_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Return current config with updates applied, after validating the result."""
        candidate = dict(current)
        candidate.update(updates)
        self.validate(candidate, schema, plugin_id)
        return candidate
