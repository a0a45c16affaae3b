"""Tests for config schema validation."""

import pytest

from termkit.plugins.errors import MissingRequiredOption, TypeMismatch, UnknownOption
from termkit.plugins.manifest import ConfigOption
from termkit.plugins.validator import ConfigValidator, type_name


def schema(**types):
    """Build a schema: name='type' or name=('type', required)."""
    result = {}
    for key, entry in types.items():
        type_, required = entry if isinstance(entry, tuple) else (entry, False)
        result[key] = ConfigOption(type=type_, required=required)
    return result


class TestTypeName:
    """Tests for semantic type names."""

    def test_scalar_types(self):
        assert type_name(None) == "nil"
        assert type_name(True) == "boolean"
        assert type_name(3) == "integer"
        assert type_name(2.5) == "number"
        assert type_name("x") == "string"

    def test_container_and_callable_types(self):
        assert type_name({"a": 1}) == "table"
        assert type_name([1, 2]) == "array"
        assert type_name(len) == "function"


class TestConfigValidator:
    """Tests for ConfigValidator.validate and collect_errors."""

    def test_valid_config_passes(self):
        s = schema(name="string", enabled="boolean", ratio="number")
        ConfigValidator().validate({"name": "x", "enabled": True, "ratio": 0.5}, s)

    def test_missing_required_option(self):
        with pytest.raises(MissingRequiredOption) as exc:
            ConfigValidator().validate({}, schema(token=("string", True)), "p")
        assert exc.value.key == "token"
        assert exc.value.plugin_id == "p"

    def test_none_counts_as_absent(self):
        """A required key explicitly set to None is still missing."""
        with pytest.raises(MissingRequiredOption):
            ConfigValidator().validate({"token": None}, schema(token=("string", True)))

    def test_optional_keys_may_be_absent(self):
        ConfigValidator().validate({}, schema(token="string"))

    def test_type_mismatch_reports_expected_and_actual(self):
        with pytest.raises(TypeMismatch) as exc:
            ConfigValidator().validate({"enableTooltips": "yes"}, schema(enableTooltips="boolean"))
        assert exc.value.key == "enableTooltips"
        assert exc.value.expected == "boolean"
        assert exc.value.actual == "string"

    def test_integer_reported_as_number(self):
        with pytest.raises(TypeMismatch) as exc:
            ConfigValidator().validate({"label": 5}, schema(label="string"))
        assert exc.value.actual == "number"

    def test_number_accepts_integers_but_not_booleans(self):
        validator = ConfigValidator()
        validator.validate({"size": 3}, schema(size="number"))
        with pytest.raises(TypeMismatch) as exc:
            validator.validate({"size": True}, schema(size="number"))
        assert exc.value.actual == "boolean"

    def test_integer_rejects_floats(self):
        with pytest.raises(TypeMismatch) as exc:
            ConfigValidator().validate({"count": 1.5}, schema(count="integer"))
        assert exc.value.actual == "number"

    def test_table_array_function_any(self):
        s = schema(opts="table", items="array", cb="function", anything="any")
        ConfigValidator().validate({"opts": {}, "items": [], "cb": print, "anything": object()}, s)
        with pytest.raises(TypeMismatch):
            ConfigValidator().validate({"items": {}}, s)

    def test_unknown_keys_accepted_unless_strict(self):
        s = schema(name="string")
        ConfigValidator().validate({"name": "x", "extra": 1}, s)
        with pytest.raises(UnknownOption) as exc:
            ConfigValidator(strict=True).validate({"name": "x", "extra": 1}, s)
        assert exc.value.key == "extra"

    def test_errors_collected_in_schema_order(self):
        s = schema(first=("string", True), second="boolean", third=("number", True))
        errors = ConfigValidator().collect_errors({"second": 1}, s)
        assert [e.key for e in errors] == ["first", "second", "third"]
        assert isinstance(errors[1], TypeMismatch)

    def test_merged_validates_without_mutating(self):
        current = {"mode": "bounce"}
        s = schema(mode="string")
        with pytest.raises(TypeMismatch):
            ConfigValidator().merged(current, {"mode": 3}, s)
        assert current == {"mode": "bounce"}
        assert ConfigValidator().merged(current, {"mode": "fade"}, s) == {"mode": "fade"}
