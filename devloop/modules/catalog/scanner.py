"""Folder walking and script discovery."""

from __future__ import annotations

import hashlib
import logging
import os
from dataclasses import dataclass, field
from itertools import islice
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .exceptions import ScanError
from .metadata import parse_header
from .models import Script

logger = logging.getLogger(__name__)

SNIFF_BYTES = 8192


def script_id_for(path: str) -> str:
    """Stable id derived from the normalized, symlink-resolved path."""
    normalized = os.path.normcase(os.path.realpath(path))
    return hashlib.md5(normalized.encode("utf-8"), usedforsecurity=False).hexdigest()


@dataclass(slots=True)
class FolderScan:
    scripts: list[Script] = field(default_factory=list)
    errors: list[ScanError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def iter_script_files(root: str, errors: list[ScanError]) -> Iterator[str]:
    """Yield candidate files below ``root`` in a deterministic order.

    Directory symlinks are followed, but each real directory is visited at
    most once, which also breaks symlink cycles. Hidden entries are skipped.
    """
    visited: set[tuple[int, int]] = set()

    def on_error(exc: OSError) -> None:
        errors.append(ScanError(exc.filename or root, exc.strerror or str(exc)))

    for dirpath, dirnames, filenames in os.walk(root, followlinks=True, onerror=on_error):
        try:
            stat = os.stat(dirpath)
        except OSError as exc:
            on_error(exc)
            dirnames[:] = []
            continue
        key = (stat.st_dev, stat.st_ino)
        if key in visited:
            logger.debug("Skipping already visited directory %s", dirpath)
            dirnames[:] = []
            continue
        visited.add(key)

        dirnames[:] = sorted(name for name in dirnames if not name.startswith("."))
        for filename in sorted(filenames):
            if filename.startswith("."):
                continue
            path = os.path.join(dirpath, filename)
            if os.path.isfile(path):
                yield path


def _read_head(path: str, max_lines: int, known_extension: bool) -> Optional[list[str]]:
    """Leading lines of a text file, or None for binary/undecodable files."""
    with open(path, "rb") as handle:
        sniff = handle.read(SNIFF_BYTES)
    if b"\x00" in sniff:
        return None
    if not known_extension:
        try:
            sniff.decode("utf-8")
        except UnicodeDecodeError:
            return None
    with open(path, encoding="utf-8", errors="replace") as handle:
        return list(islice(handle, max_lines))


def build_script(path: str, lines: Iterable[str], warnings: list[str]) -> tuple[Script, bool]:
    meta = parse_header(lines)
    for warning in meta.warnings:
        warnings.append(f"{path}: {warning}")
        logger.warning("Malformed metadata header in %s: %s", path, warning)
    stem = Path(path).stem
    script = Script(
        id=script_id_for(path),
        name=meta.name or stem,
        path=path,
        description=meta.description,
        author=meta.author,
        version=meta.version,
        category=meta.category,
        tags=meta.tags,
        inputs=meta.inputs,
    )
    return script, meta.found


def scan_folder(
    folder: str,
    extensions: frozenset[str],
    *,
    max_header_lines: int,
) -> FolderScan:
    """Catalog one configured folder; problems are recorded, never raised."""
    result = FolderScan()
    root = os.path.abspath(os.path.expanduser(folder))
    if not os.path.exists(root):
        result.errors.append(ScanError(folder, "folder does not exist"))
        return result
    if not os.path.isdir(root):
        result.errors.append(ScanError(folder, "not a directory"))
        return result
    if not os.access(root, os.R_OK | os.X_OK):
        result.errors.append(ScanError(folder, "folder is not readable"))
        return result

    for path in iter_script_files(root, result.errors):
        known = Path(path).suffix.lower() in extensions
        try:
            head = _read_head(path, max_header_lines, known)
        except OSError as exc:
            result.warnings.append(f"{path}: unreadable ({exc.strerror or exc})")
            logger.warning("Skipping unreadable file %s: %s", path, exc)
            continue
        if head is None:
            continue
        script, has_header = build_script(path, head, result.warnings)
        if known or has_header:
            result.scripts.append(script)
    return result


__all__ = ["FolderScan", "scan_folder", "iter_script_files", "script_id_for", "build_script"]
