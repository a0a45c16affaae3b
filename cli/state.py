"""REPL state management."""

from datetime import datetime
from functools import partial
from typing import Any, List

from termkit.plugins.host import PluginHost
from termkit.plugins.manager import PluginManager

LIFECYCLE_TOPICS = ("plugin.loaded", "plugin.enabled", "plugin.disabled", "plugin.unloaded", "plugin.errored")


class REPLState:
    """REPL state: the plugin manager and the lifecycle events seen so far."""

    def __init__(self, manager: PluginManager):
        self.manager = manager
        self.event_history: List[dict] = []
        self._handles = [
            manager.host.on(topic, partial(self._record, topic)) for topic in LIFECYCLE_TOPICS
        ]

    @property
    def host(self) -> PluginHost:
        return self.manager.host

    def _record(self, topic: str, payload: Any) -> None:
        self.event_history.append({
            "topic": topic,
            "payload": payload,
            "at": datetime.now().strftime("%H:%M:%S"),
        })

    def recent_events(self, limit: int = 15) -> List[dict]:
        return self.event_history[-limit:]

    def close(self) -> None:
        """Drop the REPL's own subscriptions."""
        for handle in self._handles:
            handle.unsubscribe()
        self._handles = []
