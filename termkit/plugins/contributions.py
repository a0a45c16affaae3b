"""Toolkit namespaces fed by enabled plugins (widgets, themes, api, hooks)."""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


class ContributionTable:
    """name -> object namespace where every entry remembers its publishing plugin.

    The first publisher of a name keeps it; later publishers of the same
    name are skipped with a warning.
    """

    def __init__(self, kind: str):
        self.kind = kind
        self._entries: Dict[str, Tuple[str, Any]] = {}

    def publish(self, owner: str, items: Mapping[str, Any]) -> List[str]:
        """Publish items for owner. Returns the names actually published."""
        published = []
        for name, obj in items.items():
            current = self._entries.get(name)
            if current is not None and current[0] != owner:
                logger.warning(
                    f"{self.kind} '{name}' from plugin '{owner}' skipped: "
                    f"already provided by '{current[0]}'"
                )
                continue
            self._entries[name] = (owner, obj)
            published.append(name)
        if published:
            logger.debug(f"Published {self.kind}(s) from '{owner}': {', '.join(published)}")
        return published

    def withdraw(self, owner: str) -> List[str]:
        """Remove every entry published by owner."""
        names = [name for name, (entry_owner, _) in self._entries.items() if entry_owner == owner]
        for name in names:
            del self._entries[name]
        return names

    def get(self, name: str) -> Optional[Any]:
        entry = self._entries.get(name)
        return entry[1] if entry is not None else None

    def owner_of(self, name: str) -> Optional[str]:
        entry = self._entries.get(name)
        return entry[0] if entry is not None else None

    def names(self) -> List[str]:
        return sorted(self._entries)

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def clear(self) -> None:
        self._entries.clear()


class HookTable:
    """hook name -> handlers from every enabled plugin, in publish order."""

    def __init__(self):
        self._hooks: Dict[str, List[Tuple[str, Callable[..., Any]]]] = {}

    def publish(self, owner: str, hooks: Mapping[str, Callable[..., Any]]) -> None:
        for name, handler in hooks.items():
            self._hooks.setdefault(name, []).append((owner, handler))

    def withdraw(self, owner: str) -> None:
        for name in list(self._hooks):
            kept = [(o, h) for o, h in self._hooks[name] if o != owner]
            if kept:
                self._hooks[name] = kept
            else:
                del self._hooks[name]

    def handlers(self, name: str) -> List[Tuple[str, Callable[..., Any]]]:
        return list(self._hooks.get(name, ()))

    def names(self) -> List[str]:
        return sorted(self._hooks)

    def clear(self) -> None:
        self._hooks.clear()
