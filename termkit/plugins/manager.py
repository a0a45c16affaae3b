"""Plugin manager - wires discovery and persisted config into a PluginHost."""

import logging
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional

from termkit.plugins.config import PluginConfigService
from termkit.plugins.discovery import PluginDiscovery
from termkit.plugins.errors import ConfigError, PluginError
from termkit.plugins.host import PluginHost
from termkit.plugins.registry import PluginInstance, PluginReport, PluginState

logger = logging.getLogger(__name__)


class PluginManager:
    """Top-level plugin system orchestrator.

    Coordinates discovery, admission, persisted enable state and config
    overrides. All lifecycle work is delegated to the host.
    """

    def __init__(
        self,
        bundled_dir: Path,
        installed_dir: Path,
        config_file: Path,
        extra_paths: Optional[List[Path]] = None,
        host: Optional[PluginHost] = None,
    ):
        self.bundled_dir = bundled_dir
        self.installed_dir = installed_dir
        self.host = host or PluginHost()
        self.config_service = PluginConfigService(config_file)

        # Build search paths: (path, source_label)
        search_paths = [
            (bundled_dir, "bundled"),
            (installed_dir, "installed"),
        ]
        if extra_paths:
            for p in extra_paths:
                search_paths.append((p, "external"))

        self.discovery = PluginDiscovery(search_paths)

    def load_all(self) -> Dict[str, PluginReport]:
        """Discover and load every plugin, then enable the ones marked enabled.

        Returns:
            plugin id -> report for every discovered plugin
        """
        # 1. Discover and admit
        rejected = {
            pid: error
            for pid, error in self.host.register_plugins(self.discovery.discover_all()).items()
            if error is not None
        }
        for pid in list(self.host.registry.descriptors()):
            self._apply_overrides(pid)

        # 2. Load everything, enable the persisted selection
        reports = self.host.load_all()
        for plugin_id in self.config_service.get_enabled_list():
            if not self.host.registry.has(plugin_id):
                logger.warning(f"Plugin '{plugin_id}' is marked enabled but was not found")
                continue
            self._enable(plugin_id)
            reports[plugin_id] = self.host.report(plugin_id)

        for pid, error in rejected.items():
            reports[pid] = PluginReport(pid, None, error)

        enabled = self.host.registry.get_by_state(PluginState.ENABLED)
        logger.info(
            f"Plugin system initialized, "
            f"{len(enabled)}/{self.host.registry.count()} plugins enabled"
        )
        return reports

    def shutdown(self) -> None:
        """Unload every plugin and reset the host."""
        self.host.shutdown()
        logger.info("All plugins unloaded")

    def enable_plugin(self, plugin_id: str) -> Optional[PluginInstance]:
        """Enable a plugin now and on the next start.

        Returns:
            PluginInstance if it reached ENABLED, None otherwise
        """
        instance = self.host.get_plugin(plugin_id)
        if not instance:
            logger.error(f"Plugin not found: {plugin_id}")
            return None

        self.config_service.enable(plugin_id)
        return instance if self._enable(plugin_id) else None

    def disable_plugin(self, plugin_id: str, cascade: Optional[bool] = None) -> Optional[PluginInstance]:
        """Disable a plugin now and on the next start.

        Raises:
            DependentsStillActive: Enabled plugins depend on it and cascade is off
        """
        instance = self.host.get_plugin(plugin_id)
        if not instance:
            logger.error(f"Plugin not found: {plugin_id}")
            return None

        self.host.disable_plugin(plugin_id, cascade=cascade)
        self.config_service.disable(plugin_id)
        for dependent in self.host.registry.get_all():
            if self.config_service.is_enabled(dependent.id) and dependent.state == PluginState.DISABLED:
                self.config_service.disable(dependent.id)
        return instance

    def update_plugin_config(self, plugin_id: str, values: Dict[str, Any]) -> Dict[str, Any]:
        """Validate and apply config values, then persist them as overrides.

        Raises:
            PluginError: If the plugin is unknown
            ConfigError: If the merged config violates the plugin's schema
        """
        merged = self.host.update_plugin_config(plugin_id, values)
        self.config_service.merge_plugin_config(plugin_id, values)
        return merged

    def install_plugin(self, source_path: Path) -> Optional[PluginInstance]:
        """Install a plugin module or package from a local path.

        Copies it to installed_dir and registers it with the host.

        Returns:
            PluginInstance if successful, None otherwise
        """
        plugin = self.discovery.discover_single(source_path, "installed")
        if not plugin:
            logger.error(f"Invalid plugin at {source_path}")
            return None

        if self.host.registry.has(plugin.id):
            logger.error(f"Plugin '{plugin.id}' already exists")
            return None

        dest = self.installed_dir / source_path.name
        if dest.exists():
            logger.error(f"Plugin path already exists: {dest}")
            return None

        self.installed_dir.mkdir(parents=True, exist_ok=True)
        if source_path.is_dir():
            shutil.copytree(source_path, dest)
        else:
            shutil.copy2(source_path, dest)
        logger.info(f"Installed plugin '{plugin.id}' to {dest}")

        plugin = self.discovery.discover_single(dest, "installed")
        if not plugin:
            return None
        try:
            return self.host.register_plugin(plugin.descriptor, source=plugin.source, path=plugin.path)
        except PluginError as e:
            logger.error(f"Installed plugin '{plugin.id}' was rejected: {e}")
            return None

    def get_plugin_info(self, plugin_id: str) -> Optional[dict]:
        """Get plugin information as dict."""
        instance = self.host.get_plugin(plugin_id)
        if not instance:
            return None
        info = instance.to_dict()
        info["path"] = str(instance.path) if instance.path else None
        info["config"] = dict(instance.descriptor.config)
        info["overrides"] = self.config_service.get_plugin_config(plugin_id)
        info["dependents"] = [p.id for p in self.host.registry.dependents(plugin_id)]
        return info

    def list_plugins(self) -> List[dict]:
        """List all plugins as dicts, in load order."""
        return self.host.list_plugins()

    def _enable(self, plugin_id: str) -> bool:
        try:
            return self.host.enable_plugin(plugin_id)
        except PluginError as e:
            logger.error(f"Cannot enable plugin '{plugin_id}': {e}")
            return False

    def _apply_overrides(self, plugin_id: str) -> None:
        overrides = self.config_service.get_plugin_config(plugin_id)
        if not overrides:
            return
        try:
            self.host.update_plugin_config(plugin_id, overrides)
        except ConfigError as e:
            logger.error(f"Ignoring stored config for plugin '{plugin_id}': {e}")
