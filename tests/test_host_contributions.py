"""Tests for widgets, themes, api functions and hooks published by plugins."""

import pytest

from termkit.plugins.api import current_api


def theme_plugin(plugin_id, theme_name="dark", **extra):
    descriptor = {
        "id": plugin_id,
        "themes": {theme_name: {"primary": plugin_id}},
    }
    descriptor.update(extra)
    return descriptor


class TestContributions:
    """Tests for publish-on-enable and withdraw-on-disable."""

    def test_published_only_while_enabled(self, host):
        host.register_plugin(theme_plugin("painter", api={"paint": lambda: "painted"}))
        host.load_plugin("painter")
        assert host.get_theme("dark") is None

        host.enable_plugin("painter")
        assert host.get_theme("dark") == {"primary": "painter"}
        assert host.provider_of("theme", "dark") == "painter"
        assert host.call_api("paint") == "painted"

        host.disable_plugin("painter")
        assert host.list_themes() == []
        assert host.list_api() == []

    def test_first_publisher_keeps_name(self, host):
        host.register_plugins([theme_plugin("first"), theme_plugin("second")])
        host.enable_all()
        assert host.get_theme("dark") == {"primary": "first"}
        assert host.list_themes() == ["dark"]

    def test_unknown_widget_and_api(self, host):
        with pytest.raises(KeyError):
            host.create_widget("missing")
        with pytest.raises(KeyError):
            host.call_api("missing")

    def test_widget_factory_runs_as_owner(self, host):
        owners = []

        def factory(**props):
            owners.append(current_api().plugin_id)
            return props

        host.register_plugin({"id": "widgets", "widgets": {"box": factory}})
        host.enable_plugin("widgets")
        assert host.create_widget("box", width=4) == {"width": 4}
        assert owners == ["widgets"]
        assert host.list_widgets() == ["box"]


class TestHooks:
    """Tests for call_hook."""

    def test_hooks_are_additive_and_isolated(self, host):
        def broken(widget):
            raise RuntimeError("hook failed")

        host.register_plugins([
            {"id": "a", "hooks": {"onButtonClick": lambda b: f"a:{b}"}},
            {"id": "b", "hooks": {"onButtonClick": broken}},
            {"id": "c", "hooks": {"onButtonClick": lambda b: f"c:{b}"}},
        ])
        host.enable_all()
        assert host.call_hook("onButtonClick", "ok") == ["a:ok", "c:ok"]
        assert host.list_hooks() == ["onButtonClick"]

    def test_hooks_withdrawn_on_disable(self, host):
        host.register_plugin({"id": "a", "hooks": {"onWidgetRender": lambda w: "seen"}})
        host.enable_plugin("a")
        host.disable_plugin("a")
        assert host.call_hook("onWidgetRender", None) == []
