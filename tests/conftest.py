"""Shared fixtures for plugin host tests."""

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from termkit.plugins.api import set_default_host
from termkit.plugins.host import PluginHost


@pytest.fixture
def host():
    """A fresh host, installed as the default host for module-level calls."""
    h = PluginHost()
    set_default_host(h)
    yield h
    h.shutdown()
    set_default_host(None)


@pytest.fixture
def calls():
    """Ordered log of (plugin_id, phase) callback invocations."""
    return []


@pytest.fixture
def make_plugin(calls):
    """Build a descriptor mapping whose callbacks append to ``calls``.

    ``fail`` names phases whose callback should raise.
    """

    def _make(plugin_id, version="1.0.0", dependencies=(), fail=(), **extra):
        def callback(phase):
            def run(descriptor):
                calls.append((descriptor.id, phase))
                if phase in fail:
                    raise RuntimeError(f"{phase} exploded")
            return run

        descriptor = {
            "id": plugin_id,
            "version": version,
            "dependencies": list(dependencies),
            "on_load": callback("load"),
            "on_enable": callback("enable"),
            "on_disable": callback("disable"),
            "on_unload": callback("unload"),
        }
        descriptor.update(extra)
        return descriptor

    return _make
