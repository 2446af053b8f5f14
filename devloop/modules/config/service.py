"""Load, validate and atomically persist the application configuration."""

from __future__ import annotations

import json
import logging
import os
import shlex
import tempfile
import threading
from pathlib import Path

from pydantic import ValidationError

from .exceptions import ConfigPersistError, ConfigValidationError
from .models import AppConfig, normalize_extension, normalize_folder

logger = logging.getLogger(__name__)


def validate_config(config: AppConfig) -> AppConfig:
    """Return a normalized copy of ``config`` or raise ``ConfigValidationError``.

    Every problem found is reported, not only the first one.
    """
    errors: list[str] = []

    folders: list[str] = []
    seen_folders: dict[str, str] = {}
    for raw in config.script_folders:
        folder = raw.strip()
        if not folder:
            errors.append("script folder paths must not be empty")
            continue
        key = normalize_folder(folder)
        if key in seen_folders:
            errors.append(f"duplicate script folder: {folder!r} (already listed as {seen_folders[key]!r})")
            continue
        seen_folders[key] = folder
        folders.append(folder)

    commands: dict[str, str] = {}
    for raw_ext, raw_command in config.extension_commands.items():
        ext = normalize_extension(raw_ext)
        if ext in ("", "."):
            errors.append(f"invalid extension key: {raw_ext!r}")
            continue
        if ext in commands:
            errors.append(f"duplicate extension: {raw_ext!r} maps to {ext!r} more than once")
            continue
        command = raw_command.strip()
        if not command:
            errors.append(f"extension {ext!r} maps to an empty command")
            continue
        try:
            shlex.split(command)
        except ValueError as exc:
            errors.append(f"extension {ext!r} has an unparsable command {command!r}: {exc}")
            continue
        commands[ext] = command

    for name in config.environment_variables:
        if not name or "=" in name or "\x00" in name:
            errors.append(f"invalid environment variable name: {name!r}")

    if errors:
        raise ConfigValidationError(errors)

    return config.model_copy(
        update={
            "script_folders": folders,
            "extension_commands": commands,
            "environment_variables": dict(config.environment_variables),
            "editor": config.editor.strip(),
        },
        deep=True,
    )


class ConfigManager:
    """Owner of the AppConfig document.

    Readers get a private copy of the current document; writers validate,
    persist to disk and only then publish the new document, all under a
    single writer lock.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._current = AppConfig()

    def load(self) -> AppConfig:
        """Read the document from disk, creating it with defaults on first run."""
        with self._lock:
            if not self.path.exists():
                config = AppConfig()
                self._write(config)
                logger.info("Created default configuration at %s", self.path)
            else:
                try:
                    raw = json.loads(self.path.read_text(encoding="utf-8"))
                    config = validate_config(AppConfig.model_validate(raw))
                except (OSError, json.JSONDecodeError, ValidationError, ConfigValidationError) as exc:
                    logger.error(
                        "Configuration at %s is unusable, falling back to defaults: %s",
                        self.path,
                        exc,
                    )
                    config = AppConfig()
            self._current = config
            return config.model_copy(deep=True)

    def get(self) -> AppConfig:
        return self._current.model_copy(deep=True)

    def update(self, new_config: AppConfig) -> AppConfig:
        """Replace the whole document; the previous one survives any failure."""
        validated = validate_config(new_config)
        with self._lock:
            self._write(validated)
            self._current = validated
        logger.info(
            "Configuration saved (%d folder(s), %d extension(s))",
            len(validated.script_folders),
            len(validated.extension_commands),
        )
        return validated.model_copy(deep=True)

    def _write(self, config: AppConfig) -> None:
        payload = json.dumps(config.to_document(), indent=2, ensure_ascii=False)
        directory = self.path.parent
        tmp_name = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=directory,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except OSError as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise ConfigPersistError(f"could not write configuration to {self.path}: {exc}") from exc
