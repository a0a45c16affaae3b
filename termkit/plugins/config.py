"""Persisted plugin selection and per-plugin config overrides.

The file holds which plugins start enabled and the config values a user
changed through ``update_plugin_config``. Descriptor defaults are never
written here; overrides are re-applied on top of them at startup.

    {
        "enabled": ["base_utility", "enhanced_button"],
        "plugins": {
            "enhanced_button": {"defaultAnimation": "pulse", "enableTooltips": false}
        }
    }
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Mapping

logger = logging.getLogger(__name__)


class PluginConfigService:
    """Enabled list (in enable order) and override tables backed by a JSON file.

    Malformed entries are dropped with a warning when the file is read, so
    a hand-edited file cannot feed non-string ids or non-table overrides
    into the host.
    """

    def __init__(self, config_file: Path):
        self.config_file = config_file
        self._enabled: List[str] = []
        self._overrides: Dict[str, Dict[str, Any]] = {}
        self.reload()

    def reload(self) -> None:
        """Re-read the file, discarding unsaved in-memory state."""
        data = self._read()

        enabled = data.get("enabled", [])
        if not isinstance(enabled, list):
            logger.warning(f"Ignoring 'enabled' in {self.config_file}: expected a list")
            enabled = []
        self._enabled = []
        for plugin_id in enabled:
            if not isinstance(plugin_id, str):
                logger.warning(f"Ignoring non-string plugin id in enabled list: {plugin_id!r}")
            elif plugin_id not in self._enabled:
                self._enabled.append(plugin_id)

        overrides = data.get("plugins", {})
        if not isinstance(overrides, dict):
            logger.warning(f"Ignoring 'plugins' in {self.config_file}: expected a table")
            overrides = {}
        self._overrides = {}
        for plugin_id, values in overrides.items():
            if isinstance(values, dict):
                self._overrides[plugin_id] = dict(values)
            else:
                logger.warning(f"Ignoring config overrides for '{plugin_id}': expected a table")

    def _read(self) -> Dict[str, Any]:
        if not self.config_file.exists():
            return {}
        try:
            with open(self.config_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error(f"Error loading plugin config: {e}")
            return {}
        if not isinstance(data, dict):
            logger.error(f"Plugin config {self.config_file} is not a JSON object")
            return {}
        return data

    def _save(self) -> None:
        data = {"enabled": self._enabled, "plugins": self._overrides}
        self.config_file.parent.mkdir(parents=True, exist_ok=True)

        # Write beside the target and swap it in, so readers never see half a file
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.config_file.name}.", suffix=".tmp", dir=self.config_file.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.config_file)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug(f"Saved plugin config to {self.config_file}")

    # ------------------------------------------------------------------
    # Enabled list
    # ------------------------------------------------------------------

    def is_enabled(self, plugin_id: str) -> bool:
        return plugin_id in self._enabled

    def get_enabled_list(self) -> List[str]:
        return list(self._enabled)

    def set_enabled(self, plugin_id: str, enabled: bool) -> bool:
        """Mark a plugin enabled or disabled for the next start.

        Returns:
            True if the stored selection changed
        """
        if enabled == self.is_enabled(plugin_id):
            return False
        if enabled:
            self._enabled.append(plugin_id)
        else:
            self._enabled.remove(plugin_id)
        self._save()
        logger.info(f"Marked plugin {'enabled' if enabled else 'disabled'}: {plugin_id}")
        return True

    def enable(self, plugin_id: str) -> None:
        self.set_enabled(plugin_id, True)

    def disable(self, plugin_id: str) -> None:
        self.set_enabled(plugin_id, False)

    # ------------------------------------------------------------------
    # Overrides
    # ------------------------------------------------------------------

    def get_plugin_config(self, plugin_id: str) -> Dict[str, Any]:
        """Stored overrides for a plugin (a copy)."""
        return dict(self._overrides.get(plugin_id, {}))

    def update_plugin_config(self, plugin_id: str, config: Mapping[str, Any]) -> None:
        """Replace the stored overrides for a plugin. An empty mapping clears them."""
        if config:
            self._overrides[plugin_id] = dict(config)
        else:
            self._overrides.pop(plugin_id, None)
        self._save()
        logger.info(f"Saved config overrides for plugin: {plugin_id}")

    def merge_plugin_config(self, plugin_id: str, values: Mapping[str, Any]) -> Dict[str, Any]:
        """Layer values over the stored overrides and persist the result.

        A value of None removes that key's override so the descriptor
        default applies again on the next start.
        """
        overrides = self.get_plugin_config(plugin_id)
        for key, value in values.items():
            if value is None:
                overrides.pop(key, None)
            else:
                overrides[key] = value
        self.update_plugin_config(plugin_id, overrides)
        return overrides
