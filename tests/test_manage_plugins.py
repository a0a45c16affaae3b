"""Tests for the manage_plugins command-line tool."""

import manage_plugins


class TestGetManager:
    """Tests for get_manager host settings."""

    def test_cascade_setting_reaches_host(self, monkeypatch):
        monkeypatch.setattr(manage_plugins, "CASCADE_DISABLE", True)
        assert manage_plugins.get_manager().host.cascade is True

    def test_cascade_off_by_default(self, monkeypatch):
        monkeypatch.setattr(manage_plugins, "CASCADE_DISABLE", False)
        assert manage_plugins.get_manager().host.cascade is False

    def test_strict_setting_reaches_host(self, monkeypatch):
        monkeypatch.setattr(manage_plugins, "STRICT_CONFIG", True)
        assert manage_plugins.get_manager().host.validator.strict is True
