"""Tests for mapping declared inputs onto argv and environment."""

import pytest

from devloop.modules.catalog import ScriptInput
from devloop.modules.execution import InputValidationError, coerce_value, resolve_inputs


def _spec(**kwargs) -> ScriptInput:
    return ScriptInput.model_validate(kwargs)


class TestCoerceValue:
    """Tests for coerce_value."""

    def test_number_rendering(self):
        """Whole floats render without a fractional part."""
        spec = _spec(name="n", type="number")

        assert coerce_value(spec, 3.0) == "3"
        assert coerce_value(spec, "2.5") == "2.5"
        assert coerce_value(spec, 7) == "7"

    def test_number_rejects_text_and_booleans(self):
        """Non numeric values are errors."""
        spec = _spec(name="n", type="number")

        with pytest.raises(ValueError):
            coerce_value(spec, "many")
        with pytest.raises(ValueError):
            coerce_value(spec, True)

    def test_boolean_words(self):
        """Booleans accept true/false and common spellings."""
        spec = _spec(name="b", type="boolean")

        assert coerce_value(spec, True) == "true"
        assert coerce_value(spec, "NO") == "false"
        with pytest.raises(ValueError):
            coerce_value(spec, "maybe")

    def test_select_must_be_an_option(self):
        """Select values are restricted to the declared options."""
        spec = _spec(name="s", type="select", options=["dev", "prod"])

        assert coerce_value(spec, "prod") == "prod"
        with pytest.raises(ValueError):
            coerce_value(spec, "staging")


class TestResolveInputs:
    """Tests for resolve_inputs."""

    def test_declared_order_is_kept(self):
        """Arguments follow declaration order regardless of mapping order."""
        declared = [_spec(name="first"), _spec(name="second"), _spec(name="third", type="number")]

        args, env = resolve_inputs(declared, {"third": 3, "first": "a", "second": "b"})

        assert args == ["a", "b", "3"]
        assert env == {}

    def test_defaults_and_missing_optionals(self):
        """Defaults fill gaps; optional inputs without a value stay positional."""
        declared = [_spec(name="a", default="x"), _spec(name="b"), _spec(name="c", default="z")]

        args, _ = resolve_inputs(declared, {})

        assert args == ["x", "", "z"]

    def test_env_prefixed_inputs_route_to_environment(self):
        """``env:`` inputs become variables with the prefix stripped."""
        declared = [_spec(name="target"), _spec(name="env:API_TOKEN", required=True)]

        args, env = resolve_inputs(declared, {"target": "prod", "env:API_TOKEN": "abc"})

        assert args == ["prod"]
        assert env == {"API_TOKEN": "abc"}

    def test_errors_are_collected(self):
        """Missing required values, bad types and unknown names are all reported."""
        declared = [_spec(name="req", required=True), _spec(name="count", type="number")]

        with pytest.raises(InputValidationError) as excinfo:
            resolve_inputs(declared, {"count": "lots", "extra": 1})

        assert len(excinfo.value.errors) == 3
