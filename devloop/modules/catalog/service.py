"""In-memory script catalog rebuilt from the configured folders."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from devloop.modules.config.models import normalize_extension

from .exceptions import ScriptNotFoundError
from .models import UNCATEGORIZED, CategoryCount, ScanReport, Script
from .scanner import scan_folder

logger = logging.getLogger(__name__)


def _sort_key(script: Script) -> tuple[str, str]:
    return (script.name.casefold(), script.id)


@dataclass(frozen=True, slots=True)
class CatalogSnapshot:
    """Immutable view of the catalog; readers never see a partial scan."""

    scripts: tuple[Script, ...] = ()
    by_id: dict[str, Script] = field(default_factory=dict)
    folders: tuple[str, ...] = ()
    loaded_at: Optional[datetime] = None

    @classmethod
    def build(
        cls,
        scripts: Iterable[Script],
        folders: Sequence[str],
        loaded_at: Optional[datetime],
    ) -> "CatalogSnapshot":
        ordered = tuple(sorted(scripts, key=_sort_key))
        return cls(
            scripts=ordered,
            by_id={script.id: script for script in ordered},
            folders=tuple(folders),
            loaded_at=loaded_at,
        )


class CatalogManager:
    """Owner of the script index.

    Writers (rescans and removals) are serialized by a lock and publish a new
    snapshot in a single reference swap; readers work on whichever snapshot
    was current when they started.
    """

    def __init__(self, *, max_header_lines: int = 200) -> None:
        self.max_header_lines = max_header_lines
        self._snapshot = CatalogSnapshot()
        self._write_lock = threading.Lock()

    @property
    def snapshot(self) -> CatalogSnapshot:
        return self._snapshot

    def load_folders(
        self,
        folders: Sequence[str],
        extension_commands: Iterable[str] = (),
    ) -> ScanReport:
        """Rescan ``folders`` and replace the catalog with what was found."""
        extensions = frozenset(normalize_extension(ext) for ext in extension_commands)
        report = ScanReport()
        found: dict[str, Script] = {}
        unique_folders: list[str] = []
        for folder in folders:
            if folder not in unique_folders:
                unique_folders.append(folder)

        with self._write_lock:
            for folder in unique_folders:
                result = scan_folder(folder, extensions, max_header_lines=self.max_header_lines)
                for error in result.errors:
                    logger.warning("Scan problem in %s: %s", error.folder, error.reason)
                report.errors.extend(result.errors)
                report.warnings.extend(result.warnings)
                for script in result.scripts:
                    # the same file reached through two folders or a symlink
                    found.setdefault(script.id, script)

            previous = self._snapshot.by_id
            report.added = sorted(sid for sid in found if sid not in previous)
            report.removed = sorted(sid for sid in previous if sid not in found)
            report.updated = sorted(
                sid for sid, script in found.items() if sid in previous and previous[sid] != script
            )
            report.total = len(found)
            self._snapshot = CatalogSnapshot.build(
                found.values(), unique_folders, datetime.now(timezone.utc)
            )

        logger.info(
            "Catalog reloaded from %d folder(s): %d script(s), %d added, %d removed, %d updated, %d error(s)",
            len(unique_folders),
            report.total,
            len(report.added),
            len(report.removed),
            len(report.updated),
            len(report.errors),
        )
        return report

    def get(self, script_id: str) -> Script:
        script = self._snapshot.by_id.get(script_id)
        if script is None:
            raise ScriptNotFoundError(script_id)
        return script

    def find(self, script_id: str) -> Optional[Script]:
        return self._snapshot.by_id.get(script_id)

    def list(
        self,
        *,
        search: Optional[str] = None,
        category: Optional[str] = None,
        tag: Optional[str] = None,
    ) -> list[Script]:
        """Scripts ordered by name (case-insensitive), ties broken by id.

        ``search`` is a case-insensitive substring match on name, description
        and tags; ``category`` and ``tag`` must match exactly. Filtering by
        ``uncategorized`` selects scripts without a category.
        """
        needle = search.strip().casefold() if search and search.strip() else None
        results = []
        for script in self._snapshot.scripts:
            if category is not None and script.category_key != category:
                continue
            if tag is not None and tag not in script.tags:
                continue
            if needle is not None and not _matches(script, needle):
                continue
            results.append(script)
        return results

    def categories(self) -> list[CategoryCount]:
        counts: dict[str, int] = {}
        for script in self._snapshot.scripts:
            counts[script.category_key] = counts.get(script.category_key, 0) + 1
        ordered = sorted(counts, key=lambda name: (name == UNCATEGORIZED, name))
        return [CategoryCount(category=name, count=counts[name]) for name in ordered]

    def remove(self, script_id: str) -> Script:
        """Drop one script from the index until the next rescan finds it again."""
        with self._write_lock:
            current = self._snapshot
            script = current.by_id.get(script_id)
            if script is None:
                raise ScriptNotFoundError(script_id)
            self._snapshot = CatalogSnapshot.build(
                (item for item in current.scripts if item.id != script_id),
                current.folders,
                current.loaded_at,
            )
        logger.info("Removed script %s (%s) from the catalog", script.name, script_id)
        return script


def _matches(script: Script, needle: str) -> bool:
    if needle in script.name.casefold() or needle in script.description.casefold():
        return True
    return any(needle in tag.casefold() for tag in script.tags)
