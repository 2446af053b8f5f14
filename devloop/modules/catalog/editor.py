"""Opening a cataloged script in the user's external editor."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess

from .exceptions import EditorLaunchError
from .models import Script

logger = logging.getLogger(__name__)

FALLBACK_EDITOR = "code"


def build_editor_command(template: str, path: str) -> list[str]:
    """Expand an editor template; ``{path}`` is replaced, otherwise appended."""
    template = template.strip() or os.environ.get("EDITOR", "").strip() or FALLBACK_EDITOR
    try:
        parts = shlex.split(template)
    except ValueError as exc:
        raise EditorLaunchError(f"invalid editor command {template!r}: {exc}") from exc
    if any("{path}" in part for part in parts):
        return [part.replace("{path}", path) for part in parts]
    return [*parts, path]


def launch_editor(template: str, script: Script) -> list[str]:
    """Start the editor detached from the service and return its argv."""
    argv = build_editor_command(template, script.path)
    try:
        subprocess.Popen(
            argv,
            cwd=script.folder,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as exc:
        raise EditorLaunchError(f"could not start editor {argv[0]!r}: {exc.strerror or exc}") from exc
    logger.info("Opened %s with %s", script.path, argv[0])
    return argv
