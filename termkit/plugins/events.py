"""Event bus - synchronous named-topic publish/subscribe.

Delivery walks a snapshot of the subscriber list, so handlers may
subscribe, unsubscribe or emit again while a delivery is in flight.
"""

import logging
from itertools import count
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Any]
# (owner, handler, payload) -> handler result; lets the host attribute nested calls to the owner
Invoker = Callable[[Optional[str], Handler, Any], Any]


def _direct_invoke(owner: Optional[str], handler: Handler, payload: Any) -> Any:
    return handler(payload)


class SubscriptionHandle:
    """Handle returned by :meth:`EventBus.subscribe`."""

    def __init__(self, bus: "EventBus", topic: str, handler: Handler, owner: Optional[str], seq: int):
        self._bus = bus
        self.topic = topic
        self.handler = handler
        self.owner = owner
        self.seq = seq
        self.active = True

    def unsubscribe(self) -> bool:
        """Stop receiving events. Returns False if already inactive."""
        if not self.active:
            return False
        return self._bus.unsubscribe(self)

    def __repr__(self) -> str:
        state = "active" if self.active else "inactive"
        return f"<SubscriptionHandle topic={self.topic!r} owner={self.owner!r} {state}>"


class EventBus:
    """Named-topic pub/sub with owner-tracked subscriptions."""

    def __init__(self, invoker: Optional[Invoker] = None):
        self._subscribers: Dict[str, List[SubscriptionHandle]] = {}
        self._invoke = invoker or _direct_invoke
        self._seq = count()

    def subscribe(self, owner: Optional[str], topic: str, handler: Handler) -> SubscriptionHandle:
        if not callable(handler):
            raise TypeError(f"Event handler for '{topic}' is not callable")
        handle = SubscriptionHandle(self, topic, handler, owner, next(self._seq))
        self._subscribers.setdefault(topic, []).append(handle)
        logger.debug(f"Subscribed to '{topic}' (owner: {owner or 'host'})")
        return handle

    def unsubscribe(self, handle: SubscriptionHandle) -> bool:
        subscribers = self._subscribers.get(handle.topic, [])
        handle.active = False
        if handle not in subscribers:
            return False
        subscribers.remove(handle)
        if not subscribers:
            del self._subscribers[handle.topic]
        return True

    def unsubscribe_all(self, owner: str) -> int:
        """Drop every subscription owned by owner.

        Returns:
            Number of subscriptions removed
        """
        removed = 0
        for topic in list(self._subscribers):
            kept = []
            for handle in self._subscribers[topic]:
                if handle.owner == owner:
                    handle.active = False
                    removed += 1
                else:
                    kept.append(handle)
            if kept:
                self._subscribers[topic] = kept
            else:
                del self._subscribers[topic]
        if removed:
            logger.info(f"Removed {removed} subscription(s) owned by '{owner}'")
        return removed

    def emit(self, topic: str, payload: Any = None) -> int:
        """Deliver payload to every subscriber of topic, in subscription order.

        A failing handler is logged and skipped; the remaining handlers
        still run.

        Returns:
            Number of handlers that completed without raising
        """
        snapshot = list(self._subscribers.get(topic, ()))
        delivered = 0
        for handle in snapshot:
            if not handle.active:
                continue
            try:
                self._invoke(handle.owner, handle.handler, payload)
                delivered += 1
            except Exception as e:
                logger.error(f"Event handler for '{topic}' (owner: {handle.owner or 'host'}) failed: {e}")
        return delivered

    def subscribers(self, topic: str) -> List[SubscriptionHandle]:
        return list(self._subscribers.get(topic, ()))

    def topics(self) -> List[str]:
        return sorted(self._subscribers)

    def clear(self) -> None:
        for handles in self._subscribers.values():
            for handle in handles:
                handle.active = False
        self._subscribers.clear()
