"""Plugin discovery - scans directories for Python plugin modules."""

import importlib.util
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple, Union

from termkit.plugins.errors import InvalidSchema
from termkit.plugins.manifest import PluginDescriptor, coerce_descriptor

logger = logging.getLogger(__name__)


@dataclass
class DiscoveredPlugin:
    """A descriptor found on disk, with where it came from."""

    descriptor: Any
    source: str = "runtime"
    path: Optional[Path] = None

    @property
    def id(self) -> Optional[str]:
        if isinstance(self.descriptor, PluginDescriptor):
            return self.descriptor.id
        if isinstance(self.descriptor, dict):
            return self.descriptor.get("id")
        return None


SearchPath = Union[Path, Tuple[Path, str]]


class PluginDiscovery:
    """Discovers plugins by importing modules that expose a ``PLUGIN`` descriptor.

    A plugin is either a single ``<name>.py`` file or a package directory
    with an ``__init__.py``. Files starting with ``_`` are ignored.
    """

    DESCRIPTOR_ATTR = "PLUGIN"

    def __init__(self, search_paths: Sequence[SearchPath]):
        """Initialize discovery with search paths.

        Args:
            search_paths: List of (path, source_label) tuples or just paths.
                          Will be searched in order.
        """
        self.search_paths = [p if isinstance(p, tuple) else (Path(p), "external") for p in search_paths]

    def discover_all(self) -> List[DiscoveredPlugin]:
        """Discover all plugins from configured search paths.

        Returns:
            Discovered plugins, first-found wins on duplicate ids
        """
        discovered = []
        seen_ids = set()

        for search_path, source in self.search_paths:
            if not search_path.exists():
                logger.debug(f"Plugin search path does not exist: {search_path}")
                continue

            for plugin in self._scan_directory(search_path, source):
                if plugin.id in seen_ids:
                    logger.warning(
                        f"Duplicate plugin ID '{plugin.id}' found at {plugin.path}, "
                        f"skipping (first-found wins)"
                    )
                    continue
                seen_ids.add(plugin.id)
                discovered.append(plugin)

        logger.info(f"Discovered {len(discovered)} plugin(s)")
        return discovered

    def discover_single(self, plugin_path: Path, source: str = "external") -> Optional[DiscoveredPlugin]:
        """Discover a single plugin from a module file or package directory.

        Returns:
            DiscoveredPlugin if valid, None otherwise
        """
        module_file = self._module_file(plugin_path)
        if module_file is None:
            logger.error(f"No plugin module found at {plugin_path}")
            return None
        return self._load_module(module_file, plugin_path, source)

    def _scan_directory(self, search_path: Path, source: str) -> List[DiscoveredPlugin]:
        plugins = []
        for item in sorted(search_path.iterdir()):
            if item.name.startswith(("_", ".")):
                continue
            module_file = self._module_file(item)
            if module_file is None:
                continue
            plugin = self._load_module(module_file, item, source)
            if plugin:
                plugins.append(plugin)
        return plugins

    @staticmethod
    def _module_file(path: Path) -> Optional[Path]:
        if path.is_file() and path.suffix == ".py":
            return path
        if path.is_dir() and (path / "__init__.py").exists():
            return path / "__init__.py"
        return None

    def _load_module(self, module_file: Path, plugin_path: Path, source: str) -> Optional[DiscoveredPlugin]:
        """Import a plugin module and validate its descriptor.

        Returns:
            DiscoveredPlugin if valid, None otherwise
        """
        module_name = f"termkit_plugin_{source}_{plugin_path.stem}"
        try:
            spec = importlib.util.spec_from_file_location(
                module_name,
                module_file,
                submodule_search_locations=[str(plugin_path)] if plugin_path.is_dir() else None,
            )
            module = importlib.util.module_from_spec(spec)
            sys.modules[module_name] = module
            spec.loader.exec_module(module)

            raw = getattr(module, self.DESCRIPTOR_ATTR, None)
            if raw is None:
                logger.debug(f"Skipping {module_file}: no {self.DESCRIPTOR_ATTR} descriptor")
                sys.modules.pop(module_name, None)
                return None

            descriptor = coerce_descriptor(raw)
            logger.debug(f"Discovered plugin: {descriptor.id} at {plugin_path}")
            return DiscoveredPlugin(descriptor=descriptor, source=source, path=plugin_path)

        except InvalidSchema as e:
            logger.error(f"Invalid plugin descriptor in {module_file}: {e}")
        except Exception as e:
            logger.error(f"Error loading {module_file}: {e}")

        sys.modules.pop(module_name, None)
        return None
