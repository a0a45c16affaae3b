"""Plugin host - admits descriptors, orders lifecycle transitions and brokers
services, events and contributions between plugins.

One ``PluginHost`` owns every shared table. Plugins only reach them
through :class:`~termkit.plugins.api.PluginAPI` or the module-level
functions, never by direct reference.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from termkit.plugins.api import PluginAPI, acting_as
from termkit.plugins.contributions import ContributionTable, HookTable
from termkit.plugins.discovery import DiscoveredPlugin
from termkit.plugins.errors import (
    DependencyNotReady,
    DependentsStillActive,
    DuplicateId,
    InvalidSchema,
    InvalidTransition,
    LifecycleError,
    PluginError,
    StillDependedOn,
)
from termkit.plugins.events import EventBus, SubscriptionHandle
from termkit.plugins.lifecycle import PluginLifecycle
from termkit.plugins.manifest import PluginDescriptor, coerce_descriptor
from termkit.plugins.registry import (
    LOADED_STATES,
    PluginInstance,
    PluginRegistry,
    PluginReport,
    PluginState,
)
from termkit.plugins.resolver import DependencyResolver, Resolution, dependency_ids
from termkit.plugins.services import ServiceRegistry
from termkit.plugins.validator import ConfigValidator

logger = logging.getLogger(__name__)

# (descriptor, source, path) awaiting admission
_Pending = Tuple[PluginDescriptor, str, Optional[Path]]


class PluginHost:
    """Top-level plugin host.

    Args:
        strict_config: Reject config keys that are not declared in the schema
        cascade: Default policy when disabling/unloading a plugin that others
            depend on. False rejects with DependentsStillActive; True first
            disables/unloads the dependents in reverse load order.
    """

    def __init__(self, strict_config: bool = False, cascade: bool = False):
        self.cascade = cascade
        self.registry = PluginRegistry()
        self.resolver = DependencyResolver()
        self.validator = ConfigValidator(strict=strict_config)
        self.lifecycle = PluginLifecycle(self.validator, invoker=self._call_as)

        self._services = ServiceRegistry()
        self._events = EventBus(invoker=self._call_as)
        self._widgets = ContributionTable("widget")
        self._themes = ContributionTable("theme")
        self._api = ContributionTable("api function")
        self._hooks = HookTable()
        self._apis: Dict[Optional[str], PluginAPI] = {}

    # ------------------------------------------------------------------
    # Owner attribution
    # ------------------------------------------------------------------

    def api_for(self, plugin_id: Optional[str] = None) -> PluginAPI:
        """Get the PluginAPI bound to plugin_id (None for the host itself)."""
        api = self._apis.get(plugin_id)
        if api is None:
            api = PluginAPI(self, plugin_id)
            self._apis[plugin_id] = api
        return api

    def _call_as(self, owner: Optional[str], fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        with acting_as(self.api_for(owner)):
            return fn(*args, **kwargs)

    # ------------------------------------------------------------------
    # Descriptor store
    # ------------------------------------------------------------------

    def register_plugin(self, descriptor: Any, source: str = "runtime", path: Optional[Path] = None) -> PluginInstance:
        """Admit a single plugin.

        Raises:
            InvalidSchema: Descriptor fields missing or malformed
            DuplicateId: The id is held by a plugin that is not unloaded
            ResolutionError: The plugin's dependencies cannot be satisfied, or
                admitting it would break an already registered plugin
        """
        results = self.register_plugins([DiscoveredPlugin(descriptor, source, path)])
        (plugin_id, error), = results.items()
        if error is not None:
            raise error
        return self.registry.get(plugin_id)

    def register_plugins(self, items: Iterable[Any], source: str = "runtime") -> Dict[str, Optional[PluginError]]:
        """Admit a batch of plugins, resolved together with the registered set.

        Items are descriptors, descriptor mappings or DiscoveredPlugin records.
        Order inside the batch does not matter. Each failing plugin is
        rejected on its own; the others are admitted.

        Returns:
            plugin id -> None if admitted, else the rejection error. A
            repeated id inside the batch is reported as "<id>#<position>".
        """
        results: Dict[str, Optional[PluginError]] = {}
        pending: Dict[str, _Pending] = {}

        for index, item in enumerate(items):
            item_source, item_path, raw = source, None, item
            if isinstance(item, DiscoveredPlugin):
                item_source, item_path, raw = item.source, item.path, item.descriptor
            try:
                descriptor = coerce_descriptor(raw)
            except InvalidSchema as e:
                key = e.plugin_id or f"<invalid #{index}>"
                logger.error(f"Rejected plugin {key}: {e}")
                results[key] = e
                continue

            existing = self.registry.get(descriptor.id)
            if descriptor.id in pending or (existing is not None and existing.state != PluginState.UNLOADED):
                error = DuplicateId(descriptor.id)
                logger.error(str(error))
                # A repeat inside the batch is keyed by position so the first copy keeps the id
                results[f"{descriptor.id}#{index}" if descriptor.id in pending else descriptor.id] = error
                continue
            pending[descriptor.id] = (descriptor, item_source, item_path)

        results.update(self._admit(pending))
        return results

    def _admit(self, pending: Dict[str, _Pending]) -> Dict[str, Optional[PluginError]]:
        results: Dict[str, Optional[PluginError]] = {}
        pending = dict(pending)

        while pending:
            committed = self.registry.descriptors()
            already_broken = set(self.resolver.resolve(committed).failures)
            candidate = dict(committed)
            candidate.update({pid: entry[0] for pid, entry in pending.items()})
            failures = self.resolver.resolve(candidate).failures

            rejected = {pid: error for pid, error in failures.items() if pid in pending}
            if not rejected:
                # Admission must not break plugins that already resolved
                broken = [pid for pid in sorted(failures) if pid not in already_broken]
                for pid in broken:
                    error = failures[pid]
                    for target in self._culprits(pid, failures, candidate, pending):
                        rejected.setdefault(target, error)
                if not rejected:
                    break

            for pid, error in rejected.items():
                logger.error(f"Rejected plugin {pid}: {error}")
                results[pid] = error
                del pending[pid]

        for pid in sorted(pending):
            descriptor, source, path = pending[pid]
            self.registry.register(PluginInstance(descriptor=descriptor, source=source, path=path))
            results[pid] = None

        return results

    @staticmethod
    def _culprits(
        plugin_id: str,
        failures: Mapping[str, PluginError],
        candidate: Mapping[str, PluginDescriptor],
        pending: Mapping[str, _Pending],
    ) -> List[str]:
        """Pending ids responsible for breaking plugin_id."""
        # Follow the chain of unresolvable dependencies down to a pending plugin
        culprit = getattr(failures[plugin_id], "dependency_id", None)
        seen = {plugin_id}
        while culprit is not None and culprit not in pending and culprit not in seen:
            seen.add(culprit)
            culprit = getattr(failures.get(culprit), "dependency_id", None)
        if culprit in pending:
            return [culprit]

        # No chain (e.g. a cycle): blame the pending plugins it depends on
        closure = set()
        stack = [plugin_id]
        while stack:
            descriptor = candidate.get(stack.pop())
            if descriptor is None:
                continue
            for dep_id in dependency_ids(descriptor):
                if dep_id not in closure:
                    closure.add(dep_id)
                    stack.append(dep_id)
        return sorted(closure & set(pending)) or sorted(pending)

    def unregister_plugin(self, plugin_id: str) -> None:
        """Remove a plugin, unloading it first if needed.

        Raises:
            StillDependedOn: If loaded plugins depend on it
        """
        instance = self._require(plugin_id)
        dependents = [p.id for p in self.registry.loaded_dependents(plugin_id)]
        if dependents:
            raise StillDependedOn(plugin_id, dependents)

        if instance.state not in (PluginState.REGISTERED, PluginState.UNLOADED):
            self.unload_plugin(plugin_id)
        self._release(instance)
        self.registry.unregister(plugin_id)
        self._apis.pop(plugin_id, None)

    def get_plugin(self, plugin_id: str) -> Optional[PluginInstance]:
        return self.registry.get(plugin_id)

    def get_state(self, plugin_id: str) -> Optional[PluginState]:
        instance = self.registry.get(plugin_id)
        return instance.state if instance else None

    def list_plugins(self) -> List[dict]:
        """List all plugins as dicts, in load order."""
        return [self.registry.get(pid).to_dict() for pid in self._ordered_ids()]

    def resolve(self) -> Resolution:
        """Resolve the currently registered descriptor set."""
        return self.resolver.resolve(self.registry.descriptors())

    def load_order(self) -> List[str]:
        """Ids of all resolvable plugins, dependencies first."""
        return self.resolve().order

    def _ordered_ids(self) -> List[str]:
        resolution = self.resolve()
        return resolution.order + sorted(resolution.failures)

    def _require(self, plugin_id: str) -> PluginInstance:
        instance = self.registry.get(plugin_id)
        if instance is None:
            raise PluginError(f"Plugin not found: {plugin_id}", plugin_id)
        return instance

    # ------------------------------------------------------------------
    # Single-plugin transitions
    # ------------------------------------------------------------------

    def load_plugin(self, plugin_id: str) -> bool:
        """Load a plugin, loading its registered dependencies first."""
        instance = self._require(plugin_id)
        if instance.state in LOADED_STATES:
            return True
        if not self._prepare_dependencies(instance, "load"):
            return False
        ok = self.lifecycle.load(instance)
        self._notify(instance, "loaded" if ok else "errored")
        return ok

    def enable_plugin(self, plugin_id: str) -> bool:
        """Enable a plugin, loading it and enabling its dependencies first."""
        instance = self._require(plugin_id)
        if instance.state == PluginState.ENABLED:
            return True
        if instance.state == PluginState.REGISTERED or (
            instance.state == PluginState.ERRORED and instance.stable_state == PluginState.REGISTERED
        ):
            if not self.load_plugin(plugin_id):
                return False
        if not self._prepare_dependencies(instance, "enable"):
            return False

        ok = self.lifecycle.enable(instance)
        if ok:
            self._publish(instance)
        self._notify(instance, "enabled" if ok else "errored")
        return ok

    def disable_plugin(self, plugin_id: str, cascade: Optional[bool] = None) -> bool:
        """Disable a plugin.

        Raises:
            DependentsStillActive: Enabled plugins depend on it and cascade is off
        """
        instance = self._require(plugin_id)
        if not self._is_enabled(instance):
            return True

        cascade = self.cascade if cascade is None else cascade
        dependents = [p for p in self._dependents_closure(plugin_id) if self._is_enabled(p)]
        if dependents:
            if not cascade:
                raise DependentsStillActive(plugin_id, [p.id for p in dependents], "disable")
            logger.info(f"Cascading disable of {plugin_id} to: {', '.join(p.id for p in dependents)}")
            for dependent in dependents:
                if not self.disable_plugin(dependent.id, cascade=True):
                    instance.error = DependentsStillActive(plugin_id, [dependent.id], "disable")
                    logger.error(str(instance.error))
                    return False

        ok = self.lifecycle.disable(instance)
        self._withdraw(instance)
        self._notify(instance, "disabled" if ok else "errored")
        return ok

    def unload_plugin(self, plugin_id: str, cascade: Optional[bool] = None) -> bool:
        """Unload a plugin, disabling it first if needed.

        Services and subscriptions owned by the plugin are released even
        when on_unload fails.

        Raises:
            DependentsStillActive: Loaded plugins depend on it and cascade is off
            InvalidTransition: The plugin was never loaded
        """
        instance = self._require(plugin_id)
        if instance.state == PluginState.UNLOADED:
            return True
        if instance.state == PluginState.REGISTERED:
            raise InvalidTransition(plugin_id, instance.state, "unload")

        cascade = self.cascade if cascade is None else cascade
        dependents = [p for p in self._dependents_closure(plugin_id) if p.is_loaded]
        if dependents:
            if not cascade:
                raise DependentsStillActive(plugin_id, [p.id for p in dependents], "unload")
            logger.info(f"Cascading unload of {plugin_id} to: {', '.join(p.id for p in dependents)}")
            for dependent in dependents:
                self.unload_plugin(dependent.id, cascade=True)

        try:
            if self._is_enabled(instance):
                self.disable_plugin(plugin_id, cascade=cascade)

            if self.lifecycle.can_transition(instance, "unload"):
                ok = self.lifecycle.unload(instance)
            else:
                logger.warning(
                    f"Force-unloading errored plugin {plugin_id} "
                    f"(last stable state: {instance.stable_state.value})"
                )
                instance.state = instance.stable_state = PluginState.UNLOADED
                ok = True
        finally:
            self._release(instance)

        self._notify(instance, "unloaded" if ok else "errored")
        return ok

    def _is_enabled(self, instance: PluginInstance) -> bool:
        if instance.state == PluginState.ERRORED:
            return instance.stable_state == PluginState.ENABLED
        return instance.state == PluginState.ENABLED

    def _prepare_dependencies(self, instance: PluginInstance, phase: str) -> bool:
        """Bring every transitive dependency to LOADED (phase 'load') or ENABLED."""
        resolution = self.resolve()
        if instance.id in resolution.failures:
            instance.error = resolution.failures[instance.id]
            logger.error(f"Cannot {phase} plugin {instance.id}: {instance.error}")
            return False

        required = "loaded" if phase == "load" else "enabled"
        for dep_id in self._dependency_closure(instance.id, resolution):
            dep = self.registry.get(dep_id)
            if phase == "load" and dep.state in LOADED_STATES:
                continue
            if phase == "enable" and dep.state == PluginState.ENABLED:
                continue

            ready = False
            if dep.state not in (PluginState.ERRORED, PluginState.UNLOADED) and dep.in_flight is None:
                ready = self.load_plugin(dep_id) if phase == "load" else self.enable_plugin(dep_id)
            if not ready:
                instance.error = DependencyNotReady(instance.id, dep_id, required)
                logger.error(str(instance.error))
                return False
        return True

    def _dependency_closure(self, plugin_id: str, resolution: Resolution) -> List[str]:
        """Transitive dependencies of plugin_id, in load order."""
        seen = set()
        stack = [plugin_id]
        while stack:
            current = self.registry.get(stack.pop())
            if current is None:
                continue
            for dep_id in dependency_ids(current.descriptor):
                if dep_id not in seen:
                    seen.add(dep_id)
                    stack.append(dep_id)
        seen.discard(plugin_id)
        return [pid for pid in resolution.order if pid in seen]

    def _dependents_closure(self, plugin_id: str) -> List[PluginInstance]:
        """Transitive dependents of plugin_id, furthest dependents first."""
        seen = set()
        stack = [plugin_id]
        while stack:
            for dependent in self.registry.dependents(stack.pop()):
                if dependent.id not in seen:
                    seen.add(dependent.id)
                    stack.append(dependent.id)
        seen.discard(plugin_id)
        return [self.registry.get(pid) for pid in reversed(self._ordered_ids()) if pid in seen]

    # ------------------------------------------------------------------
    # Batch transitions
    # ------------------------------------------------------------------

    def load_all(self) -> Dict[str, PluginReport]:
        """Load every registered plugin in load order."""
        return self._forward_batch("load")

    def enable_all(self) -> Dict[str, PluginReport]:
        """Load and enable every registered plugin in load order."""
        reports = self._forward_batch("enable")
        enabled = sum(1 for r in reports.values() if r.state == PluginState.ENABLED)
        logger.info(f"Plugin host: {enabled}/{self.registry.count()} plugins enabled")
        return reports

    def disable_all(self) -> Dict[str, PluginReport]:
        """Disable every enabled plugin in reverse load order."""
        reports = {}
        for pid in reversed(self._ordered_ids()):
            instance = self.registry.get(pid)
            if instance is not None and instance.state == PluginState.ENABLED:
                self._run_guarded(instance, lambda: self.disable_plugin(pid, cascade=True))
            if instance is not None:
                reports[pid] = self.report(pid)
        return reports

    def unload_all(self) -> Dict[str, PluginReport]:
        """Disable and unload every loaded plugin in reverse load order."""
        reports = {}
        for pid in reversed(self._ordered_ids()):
            instance = self.registry.get(pid)
            if instance is None:
                continue
            if instance.is_loaded or instance.state == PluginState.ERRORED:
                self._run_guarded(instance, lambda: self.unload_plugin(pid, cascade=True))
            reports[pid] = self.report(pid)
        return reports

    def _forward_batch(self, phase: str) -> Dict[str, PluginReport]:
        reports: Dict[str, PluginReport] = {}
        attempted = set()

        # Plugins registered by callbacks during the batch are picked up by the next pass
        while True:
            resolution = self.resolve()
            for pid, error in resolution.failures.items():
                if pid in attempted:
                    continue
                attempted.add(pid)
                instance = self.registry.get(pid)
                instance.error = error
                logger.error(f"Skipping plugin {pid}: {error}")
                reports[pid] = self.report(pid)

            batch = [pid for pid in resolution.order if pid not in attempted]
            if not batch:
                break

            for pid in batch:
                attempted.add(pid)
                instance = self.registry.get(pid)
                if instance is None:
                    continue
                if instance.state == PluginState.REGISTERED:
                    step = self.load_plugin if phase == "load" else self.enable_plugin
                    self._run_guarded(instance, lambda: step(pid))
                elif phase == "enable" and instance.state in (PluginState.LOADED, PluginState.DISABLED):
                    self._run_guarded(instance, lambda: self.enable_plugin(pid))
                reports[pid] = self.report(pid)

        return reports

    @staticmethod
    def _run_guarded(instance: PluginInstance, step: Callable[[], bool]) -> None:
        try:
            step()
        except LifecycleError as e:
            logger.error(f"Plugin {instance.id}: {e}")
            if instance.error is None:
                instance.error = e

    def report(self, plugin_id: str) -> PluginReport:
        instance = self.registry.get(plugin_id)
        if instance is None:
            return PluginReport(plugin_id, None)
        return PluginReport(plugin_id, instance.state, instance.error)

    def shutdown(self) -> None:
        """Unload and unregister every plugin and clear all shared tables."""
        logger.info("Shutting down plugin host")
        self.unload_all()
        for pid in reversed(self._ordered_ids()):
            instance = self.registry.get(pid)
            if instance is not None:
                self._release(instance)
        self.registry.clear()
        self._services.clear()
        self._events.clear()
        self._widgets.clear()
        self._themes.clear()
        self._api.clear()
        self._hooks.clear()
        self._apis.clear()

    # ------------------------------------------------------------------
    # Config
    # ------------------------------------------------------------------

    def update_plugin_config(self, plugin_id: str, values: Mapping[str, Any]) -> Dict[str, Any]:
        """Apply config values after validating the merged result.

        Raises:
            ConfigError: If the merged config violates the schema
        """
        descriptor = self._require(plugin_id).descriptor
        merged = self.validator.merged(descriptor.config, values, descriptor.config_schema, plugin_id)
        descriptor.config.clear()
        descriptor.config.update(merged)
        logger.info(f"Updated config for plugin: {plugin_id}")
        return dict(descriptor.config)

    # ------------------------------------------------------------------
    # Services and events
    # ------------------------------------------------------------------

    def register_service(self, name: str, implementation: Any, owner: Optional[str] = None) -> None:
        self._services.register(owner, name, implementation)

    def get_service(self, name: str) -> Optional[Any]:
        return self._services.get(name)

    def list_services(self) -> List[Tuple[str, Optional[str]]]:
        """(name, owner) pairs of every bound service."""
        return [(entry.name, entry.owner) for entry in self._services.entries()]

    def emit(self, topic: str, payload: Any = None) -> int:
        return self._events.emit(topic, payload)

    def on(self, topic: str, handler: Callable[[Any], Any], owner: Optional[str] = None) -> SubscriptionHandle:
        return self._events.subscribe(owner, topic, handler)

    def _notify(self, instance: PluginInstance, event: str) -> None:
        payload = {"plugin_id": instance.id, "state": instance.state.value}
        if event == "errored" and instance.error is not None:
            payload["error"] = str(instance.error)
        self._events.emit(f"plugin.{event}", payload)

    def _release(self, instance: PluginInstance) -> None:
        self._withdraw(instance)
        self._services.release_all(instance.id)
        self._events.unsubscribe_all(instance.id)

    # ------------------------------------------------------------------
    # Contributions
    # ------------------------------------------------------------------

    def _publish(self, instance: PluginInstance) -> None:
        d = instance.descriptor
        self._widgets.publish(d.id, d.widgets)
        self._themes.publish(d.id, d.themes)
        self._api.publish(d.id, d.api)
        self._hooks.publish(d.id, d.hooks)

    def _withdraw(self, instance: PluginInstance) -> None:
        self._widgets.withdraw(instance.id)
        self._themes.withdraw(instance.id)
        self._api.withdraw(instance.id)
        self._hooks.withdraw(instance.id)

    def get_widget(self, name: str) -> Optional[Any]:
        return self._widgets.get(name)

    def list_widgets(self) -> List[str]:
        return self._widgets.names()

    def create_widget(self, name: str, **props: Any) -> Any:
        """Instantiate a widget contributed by an enabled plugin.

        Raises:
            KeyError: If no enabled plugin provides the widget
        """
        factory = self._widgets.get(name)
        if factory is None:
            raise KeyError(f"Unknown widget '{name}'")
        return self._call_as(self._widgets.owner_of(name), factory, **props)

    def provider_of(self, kind: str, name: str) -> Optional[str]:
        """Plugin that published a widget, theme or api function ("widget" | "theme" | "api")."""
        table = {"widget": self._widgets, "theme": self._themes, "api": self._api}[kind]
        return table.owner_of(name)

    def get_theme(self, name: str) -> Optional[Any]:
        return self._themes.get(name)

    def list_themes(self) -> List[str]:
        return self._themes.names()

    def get_api(self, name: str) -> Optional[Callable[..., Any]]:
        return self._api.get(name)

    def list_api(self) -> List[str]:
        return self._api.names()

    def call_api(self, name: str, *args: Any, **kwargs: Any) -> Any:
        """Call an api function contributed by an enabled plugin.

        Raises:
            KeyError: If no enabled plugin provides the function
        """
        fn = self._api.get(name)
        if fn is None:
            raise KeyError(f"Unknown api function '{name}'")
        return self._call_as(self._api.owner_of(name), fn, *args, **kwargs)

    def call_hook(self, name: str, *args: Any, **kwargs: Any) -> List[Any]:
        """Run every enabled plugin's handler for a hook, isolating failures.

        Returns:
            Results of the handlers that completed
        """
        results = []
        for owner, handler in self._hooks.handlers(name):
            try:
                results.append(self._call_as(owner, handler, *args, **kwargs))
            except Exception as e:
                logger.error(f"Hook '{name}' from plugin '{owner}' failed: {e}")
        return results

    def list_hooks(self) -> List[str]:
        return self._hooks.names()
