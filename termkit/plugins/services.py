"""Service registry - named shared implementations, owned by plugins."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from termkit.plugins.errors import ServiceNameTaken

logger = logging.getLogger(__name__)


@dataclass
class ServiceEntry:
    name: str
    implementation: Any
    owner: Optional[str]  # None for services registered by the host itself


class ServiceRegistry:
    """Process-wide name -> implementation map with per-owner release."""

    def __init__(self):
        self._services: Dict[str, ServiceEntry] = {}

    def register(self, owner: Optional[str], name: str, implementation: Any) -> None:
        """Bind a service name.

        Re-registration by the same owner replaces the previous binding.

        Raises:
            ServiceNameTaken: If the name is bound to a different owner
        """
        existing = self._services.get(name)
        if existing is not None and existing.owner != owner:
            raise ServiceNameTaken(name, existing.owner, owner)

        self._services[name] = ServiceEntry(name=name, implementation=implementation, owner=owner)
        if existing is not None:
            logger.debug(f"Replaced service '{name}' (owner: {owner or 'host'})")
        else:
            logger.info(f"Registered service '{name}' (owner: {owner or 'host'})")

    def get(self, name: str) -> Optional[Any]:
        """Get a service implementation, or None if absent."""
        entry = self._services.get(name)
        return entry.implementation if entry is not None else None

    def owner_of(self, name: str) -> Optional[str]:
        entry = self._services.get(name)
        return entry.owner if entry is not None else None

    def unregister(self, owner: Optional[str], name: str) -> bool:
        """Remove one binding held by owner."""
        entry = self._services.get(name)
        if entry is None or entry.owner != owner:
            return False
        del self._services[name]
        return True

    def release_all(self, owner: str) -> List[str]:
        """Remove every service bound to owner.

        Returns:
            Names of the released services
        """
        released = [name for name, entry in self._services.items() if entry.owner == owner]
        for name in released:
            del self._services[name]
        if released:
            logger.info(f"Released {len(released)} service(s) owned by '{owner}': {', '.join(released)}")
        return released

    def entries(self) -> List[ServiceEntry]:
        return [self._services[k] for k in sorted(self._services)]

    def has(self, name: str) -> bool:
        return name in self._services

    def clear(self) -> None:
        self._services.clear()
