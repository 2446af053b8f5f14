"""Parsing of the metadata header embedded in script comments.

A header is a run of comment lines of the form ``<comment> @key: value``::

    // @name: Hello
    // @category: Testing
    // @tags: ["hello", "test"]
    // @inputs: [
    //   { "name": "name", "type": "string", "default": "" }
    // ]

Supported comment markers are ``#``, ``//``, ``--`` and ``;``. ``tags`` and
``inputs`` take JSON arrays that may span several comment lines; ``tags`` also
accepts a comma separated list. Parsing never raises: anything malformed is
reported as a warning and the affected field keeps its default.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from .models import ScriptInput

COMMENT_PREFIXES = ("//", "--", "#", ";")
FIELD_PATTERN = re.compile(r"^@(?P<key>[A-Za-z_][A-Za-z0-9_-]*)\s*:\s*(?P<value>.*)$")
TEXT_FIELDS = ("name", "description", "author", "version", "category")
JSON_FIELDS = ("tags", "inputs")
MAX_CONTINUATION_LINES = 200


@dataclass(slots=True)
class HeaderMetadata:
    name: Optional[str] = None
    description: str = ""
    author: str = ""
    version: str = ""
    category: str = ""
    tags: tuple[str, ...] = ()
    inputs: tuple[ScriptInput, ...] = ()
    found: bool = False
    warnings: list[str] = field(default_factory=list)


def _comment_body(line: str) -> Optional[str]:
    stripped = line.strip()
    for prefix in COMMENT_PREFIXES:
        if stripped.startswith(prefix):
            return stripped[len(prefix):].strip()
    return None


def _try_json(text: str) -> tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except json.JSONDecodeError:
        return False, None


def _collect_fields(lines: Iterable[str], warnings: list[str]) -> dict[str, str]:
    fields: dict[str, str] = {}
    pending_key: Optional[str] = None
    pending: list[str] = []

    for line in lines:
        body = _comment_body(line)
        if pending_key is not None:
            if (
                body is not None
                and not FIELD_PATTERN.match(body)
                and len(pending) < MAX_CONTINUATION_LINES
            ):
                pending.append(body)
                complete, _ = _try_json("\n".join(pending))
                if complete:
                    fields[pending_key] = "\n".join(pending)
                    pending_key, pending = None, []
                continue
            warnings.append(f"unterminated @{pending_key} block")
            fields[pending_key] = "\n".join(pending)
            pending_key, pending = None, []

        if body is None:
            # the header ends at the first code line
            if line.strip():
                break
            continue

        match = FIELD_PATTERN.match(body)
        if match is None:
            continue
        key = match.group("key").lower()
        value = match.group("value").strip()
        if key in JSON_FIELDS and value.startswith("[") and not _try_json(value)[0]:
            pending_key, pending = key, [value]
            continue
        if key in fields:
            warnings.append(f"duplicate @{key} field ignored")
            continue
        fields[key] = value

    if pending_key is not None:
        warnings.append(f"unterminated @{pending_key} block")
        fields[pending_key] = "\n".join(pending)
    return fields


def _parse_tags(raw: str, warnings: list[str]) -> tuple[str, ...]:
    if raw.startswith("["):
        ok, value = _try_json(raw)
        if not ok or not isinstance(value, list):
            warnings.append("@tags is not a valid JSON array")
            return ()
        tags = [str(item).strip() for item in value if isinstance(item, (str, int, float))]
    else:
        tags = [part.strip() for part in raw.split(",")]
    unique: list[str] = []
    for tag in tags:
        if tag and tag not in unique:
            unique.append(tag)
    return tuple(unique)


def _parse_inputs(raw: str, warnings: list[str]) -> tuple[ScriptInput, ...]:
    ok, value = _try_json(raw)
    if not ok or not isinstance(value, list):
        warnings.append("@inputs is not a valid JSON array")
        return ()
    inputs: list[ScriptInput] = []
    names: set[str] = set()
    for index, item in enumerate(value):
        if not isinstance(item, dict):
            warnings.append(f"@inputs[{index}] is not an object")
            continue
        try:
            spec = ScriptInput.model_validate(item)
        except ValidationError as exc:
            reason = exc.errors()[0].get("msg", "invalid") if exc.errors() else "invalid"
            warnings.append(f"@inputs[{index}] dropped: {reason}")
            continue
        if spec.name in names:
            warnings.append(f"@inputs[{index}] dropped: duplicate input name {spec.name!r}")
            continue
        names.add(spec.name)
        inputs.append(spec)
    return tuple(inputs)


def parse_header(lines: Iterable[str]) -> HeaderMetadata:
    """Extract header metadata from the leading lines of a script."""
    warnings: list[str] = []
    fields = _collect_fields(lines, warnings)
    meta = HeaderMetadata(found=bool(fields), warnings=warnings)

    for key in TEXT_FIELDS:
        if key in fields:
            setattr(meta, key, fields[key])
    if not meta.name:
        meta.name = None
    if "tags" in fields:
        meta.tags = _parse_tags(fields["tags"], warnings)
    if "inputs" in fields:
        meta.inputs = _parse_inputs(fields["inputs"], warnings)
    return meta


__all__ = ["HeaderMetadata", "parse_header", "COMMENT_PREFIXES"]
