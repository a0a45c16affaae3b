"""Plugin registry - the descriptor store, keyed by plugin id."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from termkit.plugins.errors import DuplicateId, PluginError, StillDependedOn
from termkit.plugins.manifest import PluginDescriptor
from termkit.plugins.resolver import dependency_ids

logger = logging.getLogger(__name__)


class PluginState(str, Enum):
    """Plugin lifecycle states."""

    REGISTERED = "registered"
    LOADED = "loaded"
    ENABLED = "enabled"
    DISABLED = "disabled"
    UNLOADED = "unloaded"
    ERRORED = "errored"


# States in which a plugin's on_load has run and on_unload has not
LOADED_STATES = (PluginState.LOADED, PluginState.ENABLED, PluginState.DISABLED)


@dataclass
class PluginInstance:
    """A registered plugin and its lifecycle bookkeeping."""

    descriptor: PluginDescriptor
    source: str = "runtime"  # "bundled" | "installed" | "external" | "runtime"
    path: Optional[Path] = None
    state: PluginState = PluginState.REGISTERED
    stable_state: PluginState = PluginState.REGISTERED  # last state reached without error
    error: Optional[PluginError] = None
    in_flight: Optional[str] = None  # phase whose callback is currently running

    @property
    def id(self) -> str:
        return self.descriptor.id

    @property
    def is_loaded(self) -> bool:
        """True between a successful load and the next unload."""
        if self.state == PluginState.ERRORED:
            return self.stable_state in LOADED_STATES
        return self.state in LOADED_STATES

    @property
    def enabled(self) -> bool:
        return self.state == PluginState.ENABLED

    def to_dict(self) -> dict:
        """Serialize plugin instance to dict for listings."""
        d = self.descriptor
        return {
            "id": d.id,
            "name": d.name,
            "version": d.version,
            "author": d.author,
            "description": d.description,
            "dependencies": list(d.dependencies),
            "source": self.source,
            "state": self.state.value,
            "enabled": self.enabled,
            "error": str(self.error) if self.error else None,
        }


@dataclass
class PluginReport:
    """Final state and first error of a plugin after a batch operation."""

    plugin_id: str
    state: Optional[PluginState]
    error: Optional[PluginError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PluginRegistry:
    """Central store of plugin instances, keyed by id."""

    def __init__(self):
        self._plugins: Dict[str, PluginInstance] = {}

    def register(self, instance: PluginInstance) -> None:
        """Store a plugin instance.

        An id whose previous instance reached UNLOADED may be registered again;
        the old instance is replaced by the fresh one.

        Raises:
            DuplicateId: If the id is held by a plugin that is not unloaded
        """
        existing = self._plugins.get(instance.id)
        if existing is not None and existing.state != PluginState.UNLOADED:
            raise DuplicateId(instance.id)
        self._plugins[instance.id] = instance
        if existing is not None:
            logger.info(f"Re-registered plugin: {instance.id} ({instance.source})")
        else:
            logger.info(f"Registered plugin: {instance.id} ({instance.source})")

    def unregister(self, plugin_id: str) -> PluginInstance:
        """Remove a plugin from the store.

        Raises:
            PluginError: If the plugin is unknown
            StillDependedOn: If loaded plugins depend on it
        """
        instance = self._plugins.get(plugin_id)
        if instance is None:
            raise PluginError(f"Plugin not found: {plugin_id}", plugin_id)

        dependents = [p.id for p in self.loaded_dependents(plugin_id)]
        if dependents:
            raise StillDependedOn(plugin_id, dependents)

        del self._plugins[plugin_id]
        logger.info(f"Unregistered plugin: {plugin_id}")
        return instance

    def dependents(self, plugin_id: str) -> List[PluginInstance]:
        """Get plugins that declare a direct dependency on plugin_id."""
        result = []
        for p in self._plugins.values():
            if p.id != plugin_id and plugin_id in dependency_ids(p.descriptor):
                result.append(p)
        return sorted(result, key=lambda p: p.id)

    def loaded_dependents(self, plugin_id: str) -> List[PluginInstance]:
        return [p for p in self.dependents(plugin_id) if p.is_loaded]

    def get(self, plugin_id: str) -> Optional[PluginInstance]:
        """Get a plugin by ID."""
        return self._plugins.get(plugin_id)

    def get_all(self) -> List[PluginInstance]:
        """Get all registered plugins, sorted by id."""
        return [self._plugins[k] for k in sorted(self._plugins)]

    def get_by_state(self, state: PluginState) -> List[PluginInstance]:
        return [p for p in self.get_all() if p.state == state]

    def descriptors(self) -> Dict[str, PluginDescriptor]:
        """Snapshot of id -> descriptor for dependency resolution."""
        return {pid: inst.descriptor for pid, inst in self._plugins.items()}

    def has(self, plugin_id: str) -> bool:
        """Check if a plugin is registered."""
        return plugin_id in self._plugins

    def count(self) -> int:
        """Get total number of registered plugins."""
        return len(self._plugins)

    def clear(self) -> None:
        self._plugins.clear()
