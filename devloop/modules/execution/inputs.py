"""Turning declared script inputs and caller values into argv and environment."""

from __future__ import annotations

import math
from typing import Any, Mapping, Sequence

from devloop.modules.catalog.models import InputType, ScriptInput

from .exceptions import InputValidationError

TRUE_WORDS = {"true", "1", "yes", "on"}
FALSE_WORDS = {"false", "0", "no", "off"}


def _render_number(value: float | int) -> str:
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError("must be a finite number")
        if value.is_integer():
            return str(int(value))
    return str(value)


def coerce_value(spec: ScriptInput, value: Any) -> str:
    """Validate one value against its declared type and render it for argv."""
    if spec.type is InputType.NUMBER:
        if isinstance(value, bool):
            raise ValueError("must be a number, not a boolean")
        if isinstance(value, (int, float)):
            return _render_number(value)
        if isinstance(value, str):
            text = value.strip()
            try:
                return str(int(text))
            except ValueError:
                pass
            try:
                return _render_number(float(text))
            except ValueError:
                raise ValueError(f"{value!r} is not a number") from None
        raise ValueError("must be a number")

    if spec.type is InputType.BOOLEAN:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, str) and value.strip().lower() in TRUE_WORDS | FALSE_WORDS:
            return "true" if value.strip().lower() in TRUE_WORDS else "false"
        raise ValueError("must be true or false")

    if spec.type is InputType.SELECT:
        text = value if isinstance(value, str) else None
        if text is None or text not in (spec.options or ()):
            allowed = ", ".join(spec.options or ())
            raise ValueError(f"must be one of: {allowed}")
        return text

    if spec.type is InputType.FILE:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("must be a file path")
        return value

    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValueError("must be a string")
    return value if isinstance(value, str) else _render_number(value)


def resolve_inputs(
    declared: Sequence[ScriptInput],
    values: Mapping[str, Any],
    *,
    env_prefix: str = "env:",
) -> tuple[list[str], dict[str, str]]:
    """Map named input values onto positional args and environment variables.

    Positional arguments follow the declared input order one to one; an
    optional input without a value still occupies its position as an empty
    string. Inputs whose name starts with ``env_prefix`` become environment
    variables named without the prefix.
    """
    errors: list[str] = []
    known = {spec.name for spec in declared}
    for name in values:
        if name not in known:
            errors.append(f"unknown input {name!r}")

    args: list[str] = []
    env: dict[str, str] = {}
    for spec in declared:
        value = values.get(spec.name)
        if value is None or (isinstance(value, str) and value == "" and spec.type is not InputType.STRING):
            value = spec.default
        is_env = bool(env_prefix) and spec.name.startswith(env_prefix)

        if value is None or (isinstance(value, str) and value == ""):
            if spec.required:
                errors.append(f"input {spec.name!r} is required")
                continue
            rendered = ""
        else:
            try:
                rendered = coerce_value(spec, value)
            except ValueError as exc:
                errors.append(f"input {spec.name!r} {exc}")
                continue

        if is_env:
            variable = spec.name[len(env_prefix):]
            if not variable or "=" in variable:
                errors.append(f"input {spec.name!r} does not name a valid environment variable")
                continue
            if rendered != "" or spec.required:
                env[variable] = rendered
        else:
            args.append(rendered)

    if errors:
        raise InputValidationError(errors)
    return args, env


__all__ = ["coerce_value", "resolve_inputs"]
