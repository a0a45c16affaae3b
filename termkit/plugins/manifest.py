"""Plugin descriptor model - describes a plugin's identity, dependencies and contributions."""

import re
from typing import Any, Callable, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from termkit.plugins.errors import InvalidSchema

ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.\-]*$")
VERSION_PATTERN = re.compile(r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)$")

# Semantic types understood by the config validator
CONFIG_TYPES = ("string", "boolean", "number", "integer", "table", "array", "function", "any")


class ConfigOption(BaseModel):
    """Schema entry for a single plugin config key."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(default="any", description="Semantic type: " + " | ".join(CONFIG_TYPES))
    required: bool = Field(default=False, description="Whether the key must be present before enabling")
    default: Any = Field(default=None, description="Value merged into config at registration when absent")
    description: str = Field(default="", description="Human-readable description")

    @field_validator("type")
    @classmethod
    def type_supported(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in CONFIG_TYPES:
            raise ValueError(f"unsupported config type '{v}' (expected one of {', '.join(CONFIG_TYPES)})")
        return v


class PluginDescriptor(BaseModel):
    """Declarative record a plugin supplies at registration.

    Immutable once built; only the contents of ``config`` change, and only
    through the host's validated update path. Mappings may use either the
    snake_case field names or the camelCase aliases (``configSchema``,
    ``onLoad``, ...).
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        arbitrary_types_allowed=True,
        extra="ignore",
    )

    id: str = Field(..., description="Unique plugin identifier")
    name: str = Field(default="", description="Human-readable plugin name (defaults to id)")
    version: str = Field(default="1.0.0", description="Semantic version major.minor.patch")
    author: str = Field(default="", description="Plugin author")
    description: str = Field(default="", description="Plugin description")
    dependencies: List[str] = Field(
        default_factory=list,
        description="Dependency constraints, each 'id@versionConstraint'",
    )

    # Contributions, published only while the plugin is enabled
    widgets: Dict[str, Any] = Field(default_factory=dict)
    themes: Dict[str, Any] = Field(default_factory=dict)
    hooks: Dict[str, Callable[..., Any]] = Field(default_factory=dict)
    api: Dict[str, Callable[..., Any]] = Field(default_factory=dict)

    config: Dict[str, Any] = Field(default_factory=dict)
    config_schema: Dict[str, ConfigOption] = Field(default_factory=dict, alias="configSchema")

    # Lifecycle callbacks, each called with the descriptor itself
    on_load: Optional[Callable[..., Any]] = Field(default=None, alias="onLoad")
    on_unload: Optional[Callable[..., Any]] = Field(default=None, alias="onUnload")
    on_enable: Optional[Callable[..., Any]] = Field(default=None, alias="onEnable")
    on_disable: Optional[Callable[..., Any]] = Field(default=None, alias="onDisable")

    @model_validator(mode="before")
    @classmethod
    def default_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("name") and isinstance(data.get("id"), str):
            data = {**data, "name": data["id"]}
        return data

    @field_validator("id")
    @classmethod
    def id_well_formed(cls, v: str) -> str:
        v = v.strip()
        if not ID_PATTERN.match(v):
            raise ValueError(f"invalid plugin id '{v}'")
        return v

    @field_validator("version")
    @classmethod
    def version_is_semver(cls, v: str) -> str:
        v = v.strip()
        if not VERSION_PATTERN.match(v):
            raise ValueError(f"version '{v}' is not major.minor.patch")
        return v

    @field_validator("dependencies", mode="before")
    @classmethod
    def dependencies_ordered_set(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, (list, tuple)):
            seen = []
            for item in v:
                if item not in seen:
                    seen.append(item)
            return seen
        return v

    @model_validator(mode="after")
    def apply_config_defaults(self) -> "PluginDescriptor":
        for key, option in self.config_schema.items():
            if option.default is not None and self.config.get(key) is None:
                self.config[key] = option.default
        return self

    def callback(self, phase: str) -> Optional[Callable[..., Any]]:
        """Get the lifecycle callback for a phase ('load', 'enable', ...)."""
        return getattr(self, f"on_{phase}", None)


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        loc = ".".join(str(p) for p in item.get("loc", ())) or "descriptor"
        parts.append(f"{loc}: {item.get('msg')}")
    return "; ".join(parts)


def coerce_descriptor(obj: Any) -> PluginDescriptor:
    """Build a PluginDescriptor from a descriptor or a mapping.

    Raises:
        InvalidSchema: If required fields are missing or malformed
    """
    if isinstance(obj, PluginDescriptor):
        return obj
    if not isinstance(obj, Mapping):
        raise InvalidSchema(None, f"descriptor must be a mapping, got {type(obj).__name__}")

    plugin_id = obj.get("id")
    try:
        return PluginDescriptor.model_validate(dict(obj))
    except ValidationError as e:
        raise InvalidSchema(plugin_id if isinstance(plugin_id, str) else None, _format_validation_error(e)) from e
