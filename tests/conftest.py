"""Shared fixtures for the devloop test suite."""

import shlex
import sys
import textwrap
from pathlib import Path

import pytest

from devloop.core.config import CatalogSettings, ExecutionSettings, Settings, StorageSettings
from devloop.core.container import build_container
from devloop.modules.config import AppConfig, ConfigManager

PYTHON = shlex.quote(sys.executable)


@pytest.fixture
def scripts_dir(tmp_path):
    folder = tmp_path / "scripts"
    folder.mkdir()
    return folder


@pytest.fixture
def write_script():
    """Factory writing a script file with an optional ``#`` metadata header."""

    def _write(folder: Path, filename: str, body: str = "", header: dict | None = None, prefix: str = "#") -> Path:
        lines = []
        for key, value in (header or {}).items():
            lines.append(f"{prefix} @{key}: {value}")
        text = "\n".join(lines)
        if body:
            text = f"{text}\n{textwrap.dedent(body).lstrip()}" if text else textwrap.dedent(body).lstrip()
        path = folder / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def make_settings(tmp_path):
    """Factory for isolated settings; keyword arguments tune the execution section."""

    def _make(api_key: str | None = None, **execution) -> Settings:
        return Settings(
            storage=StorageSettings(data_dir=tmp_path / "data"),
            execution=ExecutionSettings(**execution),
            catalog=CatalogSettings(rescan_on_startup=True),
            security={"api_key": api_key},
        )

    return _make


@pytest.fixture
def start_container():
    """Coroutine factory: write a config pointing at ``folders`` and start a container."""

    async def _start(settings: Settings, folders, extension_commands=None, environment_variables=None):
        ConfigManager(settings.config_file).update(
            AppConfig(
                script_folders=[str(folder) for folder in folders],
                extension_commands=extension_commands or {".py": PYTHON},
                environment_variables=environment_variables or {},
            )
        )
        container = build_container(settings)
        await container.startup()
        return container

    return _start
