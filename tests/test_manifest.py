"""Tests for PluginDescriptor admission checks."""

import pytest

from termkit.plugins.errors import InvalidSchema
from termkit.plugins.manifest import PluginDescriptor, coerce_descriptor


class TestCoerceDescriptor:
    """Tests for building descriptors from mappings."""

    def test_minimal_descriptor(self):
        d = coerce_descriptor({"id": "tiny"})
        assert d.name == "tiny"
        assert d.version == "1.0.0"
        assert d.dependencies == []
        assert d.callback("load") is None

    def test_camel_case_aliases(self):
        def on_load(descriptor):
            return None

        d = coerce_descriptor({
            "id": "aliased",
            "onLoad": on_load,
            "configSchema": {"mode": {"type": "string"}},
        })
        assert d.on_load is on_load
        assert d.callback("load") is on_load
        assert d.config_schema["mode"].type == "string"

    def test_schema_defaults_fill_config(self):
        d = coerce_descriptor({
            "id": "defaults",
            "config": {"a": 1},
            "config_schema": {
                "a": {"type": "integer", "default": 9},
                "b": {"type": "string", "default": "fill"},
            },
        })
        assert d.config == {"a": 1, "b": "fill"}

    def test_duplicate_dependencies_collapsed(self):
        d = coerce_descriptor({"id": "dup", "dependencies": ["core@1.0.0", "core@1.0.0", "ui"]})
        assert d.dependencies == ["core@1.0.0", "ui"]

    def test_descriptor_passthrough(self):
        d = PluginDescriptor(id="ready")
        assert coerce_descriptor(d) is d

    def test_descriptor_is_frozen(self):
        d = coerce_descriptor({"id": "frozen"})
        with pytest.raises(Exception):
            d.version = "2.0.0"

    @pytest.mark.parametrize("data", [
        {"name": "no id"},
        {"id": "has space"},
        {"id": "v", "version": "1.0"},
        {"id": "v", "version": "one"},
        {"id": "v", "version": "1.0.00"},
        {"id": "v", "version": "01.0.0"},
        {"id": "cb", "on_load": "not callable"},
        {"id": "schema", "config_schema": {"k": {"type": "colour"}}},
    ])
    def test_invalid_descriptors(self, data):
        with pytest.raises(InvalidSchema):
            coerce_descriptor(data)

    def test_invalid_schema_keeps_plugin_id(self):
        with pytest.raises(InvalidSchema) as exc:
            coerce_descriptor({"id": "named", "version": "x"})
        assert exc.value.plugin_id == "named"
        assert "version" in exc.value.details

    def test_non_mapping_rejected(self):
        with pytest.raises(InvalidSchema):
            coerce_descriptor(["id", "x"])
