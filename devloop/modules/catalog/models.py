"""Domain representations for cataloged scripts."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .exceptions import ScanError

UNCATEGORIZED = "uncategorized"


class InputType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    SELECT = "select"
    FILE = "file"


InputValue = Union[str, int, float, bool]


class ScriptInput(BaseModel):
    """One declared input of a script header."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(..., min_length=1)
    type: InputType = InputType.STRING
    required: bool = False
    default: Optional[InputValue] = None
    description: str = ""
    options: Optional[tuple[str, ...]] = None

    @model_validator(mode="before")
    @classmethod
    def _blank_default(cls, data: Any) -> Any:
        # headers commonly write "default": "" for "no default"
        if isinstance(data, dict) and data.get("default") == "" and data.get("type") not in (
            None,
            InputType.STRING.value,
            InputType.FILE.value,
        ):
            data = {**data, "default": None}
        return data

    @model_validator(mode="after")
    def _check_shape(self) -> "ScriptInput":
        if self.type is InputType.SELECT and not self.options:
            raise ValueError(f"select input {self.name!r} requires options")
        if self.default is None:
            return self
        value = self.default
        if self.type in (InputType.STRING, InputType.FILE) and not isinstance(value, str):
            raise ValueError(f"default of {self.type.value} input {self.name!r} must be a string")
        if self.type is InputType.NUMBER and (
            isinstance(value, bool) or not isinstance(value, (int, float))
        ):
            raise ValueError(f"default of number input {self.name!r} must be a number")
        if self.type is InputType.BOOLEAN and not isinstance(value, bool):
            raise ValueError(f"default of boolean input {self.name!r} must be true or false")
        if self.type is InputType.SELECT and value not in (self.options or ()):
            raise ValueError(f"default of select input {self.name!r} must be one of its options")
        return self


@dataclass(frozen=True, slots=True)
class Script:
    id: str
    name: str
    path: str
    description: str = ""
    author: str = ""
    version: str = ""
    category: str = ""
    tags: tuple[str, ...] = ()
    inputs: tuple[ScriptInput, ...] = ()

    @property
    def extension(self) -> str:
        return Path(self.path).suffix.lower()

    @property
    def folder(self) -> str:
        return str(Path(self.path).parent)

    @property
    def category_key(self) -> str:
        return self.category if self.category.strip() else UNCATEGORIZED

    def read_content(self) -> str:
        return Path(self.path).read_text(encoding="utf-8", errors="replace")


@dataclass(frozen=True, slots=True)
class CategoryCount:
    category: str
    count: int


@dataclass(slots=True)
class ScanReport:
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    errors: list[ScanError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    total: int = 0
