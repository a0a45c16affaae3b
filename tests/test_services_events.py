"""Tests for the service registry and the event bus."""

import pytest

from termkit.plugins.errors import ServiceNameTaken
from termkit.plugins.events import EventBus
from termkit.plugins.services import ServiceRegistry


class TestServiceRegistry:
    """Tests for ServiceRegistry."""

    def test_register_and_get(self):
        services = ServiceRegistry()
        impl = object()
        services.register("base_utility", "textUtils", impl)
        assert services.get("textUtils") is impl
        assert services.owner_of("textUtils") == "base_utility"

    def test_absent_service_is_none(self):
        assert ServiceRegistry().get("nope") is None

    def test_same_owner_replaces(self):
        services = ServiceRegistry()
        services.register("p", "svc", 1)
        services.register("p", "svc", 2)
        assert services.get("svc") == 2

    def test_other_owner_rejected(self):
        services = ServiceRegistry()
        services.register("p", "svc", 1)
        with pytest.raises(ServiceNameTaken) as exc:
            services.register("q", "svc", 2)
        assert exc.value.owner == "p"
        assert exc.value.plugin_id == "q"
        assert services.get("svc") == 1

    def test_release_all_only_touches_owner(self):
        services = ServiceRegistry()
        services.register("p", "a", 1)
        services.register("p", "b", 2)
        services.register("q", "c", 3)
        assert services.release_all("p") == ["a", "b"]
        assert services.get("a") is None
        assert services.get("c") == 3

    def test_unregister_requires_owner(self):
        services = ServiceRegistry()
        services.register("p", "a", 1)
        assert not services.unregister("q", "a")
        assert services.unregister("p", "a")
        assert not services.has("a")


class TestEventBus:
    """Tests for EventBus delivery semantics."""

    def test_delivery_in_subscription_order(self):
        bus = EventBus()
        seen = []
        bus.subscribe(None, "t", lambda p: seen.append(("first", p)))
        bus.subscribe(None, "t", lambda p: seen.append(("second", p)))
        assert bus.emit("t", 1) == 2
        assert seen == [("first", 1), ("second", 1)]

    def test_emit_without_subscribers(self):
        assert EventBus().emit("nobody", {}) == 0

    def test_failing_handler_is_isolated(self):
        bus = EventBus()
        seen = []

        def broken(payload):
            raise ValueError("boom")

        bus.subscribe(None, "t", broken)
        bus.subscribe(None, "t", seen.append)
        assert bus.emit("t", "x") == 1
        assert seen == ["x"]

    def test_unsubscribe_during_emit_skips_later_handler(self):
        bus = EventBus()
        seen = []
        handles = {}

        def first(payload):
            seen.append("first")
            handles["second"].unsubscribe()

        bus.subscribe(None, "t", first)
        handles["second"] = bus.subscribe(None, "t", lambda p: seen.append("second"))
        assert bus.emit("t") == 1
        assert seen == ["first"]
        assert not handles["second"].active

    def test_subscribe_during_emit_waits_for_next_emit(self):
        bus = EventBus()
        seen = []

        def first(payload):
            seen.append("first")
            bus.subscribe(None, "t", lambda p: seen.append("late"))

        bus.subscribe(None, "t", first)
        bus.emit("t")
        assert seen == ["first"]
        bus.emit("t")
        assert seen == ["first", "first", "late"]

    def test_nested_emit(self):
        bus = EventBus()
        seen = []
        bus.subscribe(None, "outer", lambda p: (seen.append("outer"), bus.emit("inner")))
        bus.subscribe(None, "inner", lambda p: seen.append("inner"))
        bus.emit("outer")
        assert seen == ["outer", "inner"]

    def test_handle_unsubscribe_is_idempotent(self):
        bus = EventBus()
        handle = bus.subscribe(None, "t", print)
        assert handle.unsubscribe()
        assert not handle.unsubscribe()
        assert bus.topics() == []

    def test_unsubscribe_all_by_owner(self):
        bus = EventBus()
        seen = []
        mine = bus.subscribe("p", "t", lambda p: seen.append("p"))
        bus.subscribe("q", "t", lambda p: seen.append("q"))
        assert bus.unsubscribe_all("p") == 1
        assert not mine.active
        bus.emit("t")
        assert seen == ["q"]

    def test_non_callable_handler_rejected(self):
        with pytest.raises(TypeError):
            EventBus().subscribe(None, "t", "not a function")

    def test_invoker_receives_owner(self):
        owners = []

        def invoker(owner, handler, payload):
            owners.append(owner)
            return handler(payload)

        bus = EventBus(invoker=invoker)
        bus.subscribe("p", "t", lambda p: None)
        bus.emit("t")
        assert owners == ["p"]
