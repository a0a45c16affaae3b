"""Plugin host error taxonomy.

Every error raised by the host derives from :class:`PluginError` and
carries the id of the plugin it concerns (``None`` for host-level errors).
"""

from typing import Any, List, Optional, Sequence


class PluginError(Exception):
    """Base exception for plugin-related errors."""

    def __init__(self, message: str, plugin_id: Optional[str] = None, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.plugin_id = plugin_id
        self.cause = cause


# ---------------------------------------------------------------------------
# Descriptor store
# ---------------------------------------------------------------------------

class RegistrationError(PluginError):
    """Raised when a descriptor cannot be admitted to or removed from the store."""


class DuplicateId(RegistrationError):
    def __init__(self, plugin_id: str):
        super().__init__(f"Plugin '{plugin_id}' is already registered", plugin_id)


class InvalidSchema(RegistrationError):
    def __init__(self, plugin_id: Optional[str], details: str):
        super().__init__(f"Invalid descriptor for plugin '{plugin_id}': {details}", plugin_id)
        self.details = details


class StillDependedOn(RegistrationError):
    def __init__(self, plugin_id: str, dependents: Sequence[str]):
        super().__init__(
            f"Plugin '{plugin_id}' is still required by loaded plugin(s): {', '.join(dependents)}",
            plugin_id,
        )
        self.dependents = list(dependents)


# ---------------------------------------------------------------------------
# Dependency resolver
# ---------------------------------------------------------------------------

class ResolutionError(PluginError):
    """Raised when the dependency graph cannot produce a load order."""


class MalformedConstraint(ResolutionError):
    def __init__(self, plugin_id: Optional[str], constraint: str, reason: str = ""):
        message = f"Malformed dependency constraint '{constraint}'"
        if plugin_id:
            message += f" in plugin '{plugin_id}'"
        if reason:
            message += f": {reason}"
        super().__init__(message, plugin_id)
        self.constraint = constraint


class MissingDependency(ResolutionError):
    def __init__(self, plugin_id: str, dependency_id: str):
        super().__init__(f"Plugin '{plugin_id}' requires '{dependency_id}', which is not registered", plugin_id)
        self.dependency_id = dependency_id


class VersionConflict(ResolutionError):
    def __init__(self, plugin_id: str, dependency_id: str, required: str, found: str):
        super().__init__(
            f"Plugin '{plugin_id}' requires '{dependency_id}' {required}, but version {found} is registered",
            plugin_id,
        )
        self.dependency_id = dependency_id
        self.required = required
        self.found = found


class CyclicDependency(ResolutionError):
    def __init__(self, cycle: Sequence[str]):
        members = list(cycle)
        path = " -> ".join(members + members[:1])
        super().__init__(f"Cyclic dependency: {path}", members[0] if members else None)
        self.cycle = members


class DependencyUnresolved(ResolutionError):
    def __init__(self, plugin_id: str, dependency_id: str):
        super().__init__(
            f"Plugin '{plugin_id}' depends on '{dependency_id}', which cannot be resolved",
            plugin_id,
        )
        self.dependency_id = dependency_id


# ---------------------------------------------------------------------------
# Config validator
# ---------------------------------------------------------------------------

class ConfigError(PluginError):
    """Raised when a plugin configuration does not match its schema."""

    def __init__(self, message: str, key: str, plugin_id: Optional[str] = None):
        super().__init__(message, plugin_id)
        self.key = key


class MissingRequiredOption(ConfigError):
    def __init__(self, key: str, plugin_id: Optional[str] = None):
        super().__init__(f"Missing required config option '{key}'", key, plugin_id)


class TypeMismatch(ConfigError):
    def __init__(self, key: str, expected: str, actual: str, plugin_id: Optional[str] = None):
        super().__init__(f"Config option '{key}' must be {expected}, got {actual}", key, plugin_id)
        self.expected = expected
        self.actual = actual


class UnknownOption(ConfigError):
    def __init__(self, key: str, plugin_id: Optional[str] = None):
        super().__init__(f"Config option '{key}' is not declared in the schema", key, plugin_id)


# ---------------------------------------------------------------------------
# Service registry
# ---------------------------------------------------------------------------

class ServiceError(PluginError):
    """Raised on service registry conflicts."""


class ServiceNameTaken(ServiceError):
    def __init__(self, name: str, owner: Optional[str], requested_by: Optional[str]):
        super().__init__(
            f"Service '{name}' is already provided by '{owner or 'host'}'",
            requested_by,
        )
        self.name = name
        self.owner = owner


# ---------------------------------------------------------------------------
# Lifecycle controller
# ---------------------------------------------------------------------------

class LifecycleError(PluginError):
    """Raised or recorded when a lifecycle transition cannot complete."""


class LifecycleCallbackFailed(LifecycleError):
    def __init__(self, plugin_id: str, phase: str, cause: BaseException):
        super().__init__(f"Plugin '{plugin_id}' failed in {phase}: {cause}", plugin_id, cause)
        self.phase = phase


class InvalidTransition(LifecycleError):
    def __init__(self, plugin_id: str, state: Any, phase: str):
        state_name = getattr(state, "value", state)
        super().__init__(f"Cannot {phase} plugin '{plugin_id}' in state {state_name}", plugin_id)
        self.state = state
        self.phase = phase


class DependencyNotReady(LifecycleError):
    def __init__(self, plugin_id: str, dependency_id: str, required_state: str):
        super().__init__(
            f"Plugin '{plugin_id}' cannot proceed: dependency '{dependency_id}' is not {required_state}",
            plugin_id,
        )
        self.dependency_id = dependency_id
        self.required_state = required_state


class DependentsStillActive(LifecycleError):
    def __init__(self, plugin_id: str, dependents: List[str], phase: str):
        super().__init__(
            f"Cannot {phase} plugin '{plugin_id}': required by {', '.join(dependents)}",
            plugin_id,
        )
        self.dependents = list(dependents)
        self.phase = phase
