"""Tests for the plugins shipped in plugins/bundled."""

import pytest

from termkit.constants import BUNDLED_PLUGINS_DIR
from termkit.plugins.discovery import PluginDiscovery
from termkit.plugins.errors import VersionConflict
from termkit.plugins.registry import PluginState
from termkit.widgets import Widget


@pytest.fixture
def bundled():
    return PluginDiscovery([(BUNDLED_PLUGINS_DIR, "bundled")]).discover_all()


@pytest.fixture
def toolkit(host, bundled):
    results = host.register_plugins(bundled)
    assert all(error is None for error in results.values())
    host.enable_all()
    return host


class TestBundledDiscovery:
    """Tests for the bundled plugin set."""

    def test_all_bundled_plugins_found(self, bundled):
        assert sorted(p.id for p in bundled) == ["base_utility", "enhanced_button", "example_plugin"]

    def test_load_order(self, host, bundled):
        host.register_plugins(bundled)
        order = host.load_order()
        assert order.index("base_utility") < order.index("enhanced_button")

    def test_enhanced_button_requires_exact_base_version(self, host, bundled):
        host.register_plugin({"id": "base_utility", "version": "2.0.0"})
        results = host.register_plugins(p for p in bundled if p.id != "base_utility")
        assert isinstance(results["enhanced_button"], VersionConflict)
        assert results["example_plugin"] is None


class TestBaseUtility:
    """Tests for the textUtils service and its api functions."""

    def test_text_utils_service(self, toolkit):
        text_utils = toolkit.get_service("textUtils")
        assert text_utils.format_text("hello world foo", 11) == ["hello world", "foo"]
        assert text_utils.calculate_center(10, 4) == 4
        assert text_utils.hex_to_color("#ff0000") == "red"
        assert text_utils.hex_to_color("#123456") == "white"

    def test_api_functions(self, toolkit):
        assert toolkit.call_api("formatTextLines", "a b c", 3) == ["a b", "c"]
        assert toolkit.call_api("centerContent", 10, 4) == 4
        assert toolkit.call_api("parseHexColor", "#00ffff") == "cyan"

    def test_service_gone_after_unload(self, toolkit):
        toolkit.unload_plugin("base_utility", cascade=True)
        assert toolkit.get_service("textUtils") is None
        assert toolkit.get_state("enhanced_button") == PluginState.UNLOADED


class TestExamplePlugin:
    """Tests for the gradient bar widget, theme and hooks."""

    def test_gradient_bar_renders_value(self, toolkit):
        bar = toolkit.create_widget("gradientBar", value=50, width=10)
        assert isinstance(bar, Widget)
        lines = bar.render()
        assert len(lines) == 1
        assert lines[0].cell_len == 10
        assert lines[0].plain == "    50    "

    def test_gradient_bar_clamps(self, toolkit):
        bar = toolkit.create_widget("gradientBar", max_value=20)
        bar.set_value(99)
        assert bar.value == 20
        bar.set_value(-5)
        assert bar.value == 0

    def test_vertical_bar(self, toolkit):
        bar = toolkit.create_widget("gradientBar", direction="vertical", width=2)
        assert len(bar.render()) == 10

    def test_hidden_widget_renders_nothing(self, toolkit):
        bar = toolkit.create_widget("gradientBar", visible=False)
        assert bar.render() == []

    def test_cyberpunk_theme(self, toolkit):
        assert toolkit.list_themes() == ["cyberpunk"]
        assert toolkit.get_theme("cyberpunk")["primary"] == "cyan"
        assert toolkit.call_api("applyCyberpunkTheme")["button"]["hover"] == "magenta"

    def test_gradient_button_api(self, toolkit):
        button = toolkit.call_api("createGradientButton", value=10)
        assert button.colors == ["blue", "light_sky_blue1", "white"]

    def test_click_hook(self, toolkit):
        button = toolkit.create_widget("enhancedButton", text="OK")
        assert toolkit.call_hook("onButtonClick", button) == ["OK"]


class TestEnhancedButton:
    """Tests for the enhanced button widget."""

    def test_render_box(self, toolkit):
        button = toolkit.create_widget("enhancedButton", text="OK")
        lines = button.render()
        assert len(lines) == 3
        assert all(line.cell_len == 10 for line in lines)
        assert lines[1].plain == "│   OK   │"

    def test_defaults_from_config(self, toolkit):
        button = toolkit.create_widget("enhancedButton", tooltip="hint")
        assert button.animation == "bounce"
        assert button.tooltip == "hint"
        assert button.gradient is False

    def test_config_update_changes_new_buttons(self, toolkit):
        toolkit.update_plugin_config("enhanced_button", {"defaultAnimation": "fade", "enableTooltips": False})
        button = toolkit.create_widget("enhancedButton", tooltip="hint")
        assert button.animation == "fade"
        assert button.tooltip is None

    def test_click_emits_bounce(self, toolkit):
        bounced = []
        toolkit.on("buttonBounce", lambda data: bounced.append(data["button"].text))
        button = toolkit.create_widget("enhancedButton", text="Go")
        assert button.on_click(1, 1)
        assert bounced == ["Go"]
        assert button.pressed

    def test_disabled_button_ignores_clicks(self, toolkit):
        button = toolkit.create_widget("enhancedButton", enabled=False)
        assert not button.on_click(1, 1)

    def test_tooltip_events(self, toolkit):
        seen = []
        toolkit.on("showTooltip", lambda data: seen.append(("show", data["text"])))
        toolkit.on("hideTooltip", lambda data: seen.append(("hide", None)))
        button = toolkit.create_widget("enhancedButton", tooltip="Press me", x=3, y=5)

        button.on_mouse_enter()
        assert button.hovered
        button.on_mouse_leave()
        assert seen == [("show", "Press me"), ("hide", None)]

    def test_render_requires_text_utils(self, toolkit):
        button = toolkit.create_widget("enhancedButton")
        toolkit.unload_plugin("base_utility", cascade=True)
        with pytest.raises(RuntimeError):
            button.render()
