"""PluginAPI - the owner-bound facade through which plugin code reaches the host.

The module-level functions (``register_plugin``, ``register_service``,
``get_service``, ``emit``, ``on``) act for whichever plugin's callback is
currently running, so services and subscriptions created inside
``on_load`` belong to that plugin and are released when it unloads.
Outside any callback they act for the host itself on the default host.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterator, List, Optional

if TYPE_CHECKING:
    from termkit.plugins.events import SubscriptionHandle
    from termkit.plugins.host import PluginHost
    from termkit.plugins.registry import PluginInstance


class PluginAPI:
    """API object bound to one owner (a plugin id, or None for the host)."""

    def __init__(self, host: PluginHost, plugin_id: Optional[str] = None):
        self.host = host
        self.plugin_id = plugin_id
        self._logger = logging.getLogger(f"plugin.{plugin_id}" if plugin_id else "termkit.host")

    @property
    def config(self) -> Dict[str, Any]:
        """Snapshot of the owning plugin's config."""
        if self.plugin_id is None:
            return {}
        instance = self.host.get_plugin(self.plugin_id)
        return dict(instance.descriptor.config) if instance else {}

    def register_plugin(self, descriptor: Any) -> PluginInstance:
        """Register another plugin descriptor with the host."""
        return self.host.register_plugin(descriptor)

    def register_service(self, name: str, implementation: Any) -> None:
        """Expose a named service, owned by this API's plugin."""
        self.host.register_service(name, implementation, owner=self.plugin_id)

    def get_service(self, name: str) -> Optional[Any]:
        """Look up a service by name. Returns None if absent."""
        return self.host.get_service(name)

    def emit(self, topic: str, payload: Any = None) -> int:
        """Publish payload on topic to every subscriber."""
        return self.host.emit(topic, payload)

    def on(self, topic: str, handler: Callable[[Any], Any]) -> SubscriptionHandle:
        """Subscribe handler to topic, owned by this API's plugin."""
        return self.host.on(topic, handler, owner=self.plugin_id)

    def get_logger(self, name: Optional[str] = None) -> logging.Logger:
        """Get a logger for this plugin.

        Args:
            name: Optional sub-logger name (appended to plugin.{plugin_id})

        Returns:
            Logger instance
        """
        if name:
            return logging.getLogger(f"{self._logger.name}.{name}")
        return self._logger

    def __repr__(self) -> str:
        return f"<PluginAPI owner={self.plugin_id or 'host'}>"


# ---------------------------------------------------------------------------
# Active owner stack and default host
# ---------------------------------------------------------------------------

_active: List[PluginAPI] = []
_default_host: Optional[PluginHost] = None


def get_default_host() -> PluginHost:
    """Get the default host, creating it on first use."""
    global _default_host
    if _default_host is None:
        from termkit.constants import CASCADE_DISABLE, STRICT_CONFIG
        from termkit.plugins.host import PluginHost

        _default_host = PluginHost(strict_config=STRICT_CONFIG, cascade=CASCADE_DISABLE)
    return _default_host


def set_default_host(host: Optional[PluginHost]) -> None:
    """Replace the default host (None resets it to lazy creation)."""
    global _default_host
    _default_host = host


@contextmanager
def acting_as(api: PluginAPI) -> Iterator[PluginAPI]:
    """Attribute module-level host calls to api's owner for the duration."""
    _active.append(api)
    try:
        yield api
    finally:
        _active.pop()


def current_api() -> PluginAPI:
    """API of the plugin whose callback is running, else the default host's own API."""
    if _active:
        return _active[-1]
    return get_default_host().api_for(None)


def register_plugin(descriptor: Any) -> PluginInstance:
    return current_api().register_plugin(descriptor)


def register_service(name: str, implementation: Any) -> None:
    current_api().register_service(name, implementation)


def get_service(name: str) -> Optional[Any]:
    return current_api().get_service(name)


def emit(topic: str, payload: Any = None) -> int:
    return current_api().emit(topic, payload)


def on(topic: str, handler: Callable[[Any], Any]) -> SubscriptionHandle:
    return current_api().on(topic, handler)
