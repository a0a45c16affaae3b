"""Plugin host for the termkit widget toolkit.

Imports are lazy so that plugin modules can import the lightweight
free functions (``register_service``, ``on``, ...) without pulling in
discovery or the manager.
"""

__all__ = [
    "PluginDescriptor",
    "ConfigOption",
    "PluginAPI",
    "PluginHost",
    "PluginRegistry",
    "PluginInstance",
    "PluginReport",
    "PluginState",
    "DependencyResolver",
    "ConfigValidator",
    "ServiceRegistry",
    "EventBus",
    "SubscriptionHandle",
    "PluginDiscovery",
    "PluginLifecycle",
    "PluginManager",
    "PluginConfigService",
    "register_plugin",
    "register_service",
    "get_service",
    "emit",
    "on",
    "get_default_host",
    "set_default_host",
]


def __getattr__(name):
    if name in ("PluginDescriptor", "ConfigOption"):
        from termkit.plugins import manifest
        return getattr(manifest, name)
    if name in (
        "PluginAPI", "register_plugin", "register_service", "get_service",
        "emit", "on", "get_default_host", "set_default_host",
    ):
        from termkit.plugins import api
        return getattr(api, name)
    if name == "PluginHost":
        from termkit.plugins.host import PluginHost
        return PluginHost
    if name in ("PluginRegistry", "PluginInstance", "PluginReport", "PluginState"):
        from termkit.plugins import registry
        return getattr(registry, name)
    if name == "DependencyResolver":
        from termkit.plugins.resolver import DependencyResolver
        return DependencyResolver
    if name == "ConfigValidator":
        from termkit.plugins.validator import ConfigValidator
        return ConfigValidator
    if name == "ServiceRegistry":
        from termkit.plugins.services import ServiceRegistry
        return ServiceRegistry
    if name in ("EventBus", "SubscriptionHandle"):
        from termkit.plugins import events
        return getattr(events, name)
    if name == "PluginDiscovery":
        from termkit.plugins.discovery import PluginDiscovery
        return PluginDiscovery
    if name == "PluginLifecycle":
        from termkit.plugins.lifecycle import PluginLifecycle
        return PluginLifecycle
    if name == "PluginManager":
        from termkit.plugins.manager import PluginManager
        return PluginManager
    if name == "PluginConfigService":
        from termkit.plugins.config import PluginConfigService
        return PluginConfigService
    raise AttributeError(f"module 'termkit.plugins' has no attribute {name!r}")
