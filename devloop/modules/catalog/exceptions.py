"""Script catalog specific exceptions."""

from __future__ import annotations


class CatalogError(Exception):
    """Base class for catalog errors."""


class ScriptNotFoundError(CatalogError):
    """Raised when no script with the requested id is cataloged."""

    def __init__(self, script_id: str) -> None:
        self.script_id = script_id
        super().__init__(f"script {script_id} not found")


class ScanError(CatalogError):
    """One folder (or sub-folder) that could not be scanned.

    Scan errors are collected in the scan report instead of being raised, so
    a bad folder never aborts a reload.
    """

    def __init__(self, folder: str, reason: str) -> None:
        self.folder = folder
        self.reason = reason
        super().__init__(f"{folder}: {reason}")


class EditorLaunchError(CatalogError):
    """Raised when the configured editor could not be started."""
