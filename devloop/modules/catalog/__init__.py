"""Script catalog: discovery, metadata headers and the in-memory index."""

from .editor import build_editor_command, launch_editor
from .exceptions import CatalogError, EditorLaunchError, ScanError, ScriptNotFoundError
from .metadata import HeaderMetadata, parse_header
from .models import (
    UNCATEGORIZED,
    CategoryCount,
    InputType,
    ScanReport,
    Script,
    ScriptInput,
)
from .scanner import scan_folder, script_id_for
from .service import CatalogManager, CatalogSnapshot

__all__ = [
    "CatalogManager",
    "CatalogSnapshot",
    "CategoryCount",
    "HeaderMetadata",
    "InputType",
    "ScanReport",
    "Script",
    "ScriptInput",
    "UNCATEGORIZED",
    "parse_header",
    "scan_folder",
    "script_id_for",
    "build_editor_command",
    "launch_editor",
    "CatalogError",
    "EditorLaunchError",
    "ScanError",
    "ScriptNotFoundError",
]
