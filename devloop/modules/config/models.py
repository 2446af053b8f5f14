"""User-editable application configuration document."""

from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_SCRIPT_FOLDERS = ["~/.dev-loop/scripts"]
DEFAULT_EXTENSION_COMMANDS = {
    ".py": "python",
    ".js": "node",
    ".ts": "ts-node",
    ".go": "go run",
    ".sh": "bash",
    ".bash": "bash",
    ".zsh": "zsh",
    ".zx": "zx",
}
DEFAULT_EDITOR = "code"


def normalize_extension(extension: str) -> str:
    """``py``, ``.py`` and ``.PY`` all map to ``.py``."""
    ext = extension.strip().lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    return ext


def normalize_folder(folder: str) -> str:
    return os.path.normcase(os.path.normpath(os.path.expanduser(folder.strip())))


class FeatureFlags(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    show_categories: bool = True
    show_recent: bool = True


class AppConfig(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    script_folders: list[str] = Field(default_factory=lambda: list(DEFAULT_SCRIPT_FOLDERS))
    extension_commands: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_EXTENSION_COMMANDS)
    )
    environment_variables: dict[str, str] = Field(default_factory=dict)
    editor: str = DEFAULT_EDITOR
    features: FeatureFlags = Field(default_factory=FeatureFlags)

    @field_validator("environment_variables", "extension_commands", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return {} if value is None else value

    @field_validator("editor", mode="before")
    @classmethod
    def _none_editor(cls, value):
        return "" if value is None else value

    def interpreter_for(self, extension: str) -> Optional[str]:
        target = normalize_extension(extension)
        for key, command in self.extension_commands.items():
            if normalize_extension(key) == target:
                return command
        return None

    def resolved_folders(self) -> list[str]:
        return [os.path.expanduser(folder) for folder in self.script_folders]

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)
