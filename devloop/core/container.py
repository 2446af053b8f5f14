"""Simple dependency container for wiring core services."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from devloop.core.config import Settings, get_settings
from devloop.infrastructure.database.session import build_engine, build_session_factory, init_db
from devloop.interfaces.ws.manager import EventManager
from devloop.modules.catalog.models import ScanReport
from devloop.modules.catalog.service import CatalogManager
from devloop.modules.config.models import AppConfig
from devloop.modules.config.service import ConfigManager
from devloop.modules.execution.service import ExecutionEngine
from devloop.modules.history.service import HistoryStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ApplicationContainer:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    config_manager: ConfigManager
    catalog: CatalogManager
    history: HistoryStore
    events: EventManager
    executor: ExecutionEngine
    rescan_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    async def startup(self) -> None:
        """Prepare storage, recover history and build the first catalog."""
        self.settings.data_dir.mkdir(parents=True, exist_ok=True)
        await init_db(self.engine)
        await self.history.reconcile_in_flight()
        config = self.config_manager.load()
        if self.settings.catalog.rescan_on_startup:
            self.rescan(config)
        logger.info("Service ready, data directory %s", self.settings.data_dir)

    async def shutdown(self) -> None:
        await self.executor.shutdown()
        await self.events.close_all()
        await self.engine.dispose()
        logger.info("Service stopped")

    def rescan(self, config: Optional[AppConfig] = None, folders: Optional[list[str]] = None) -> ScanReport:
        """Rebuild the catalog from the configured folders plus any extra ``folders``."""
        with self.rescan_lock:
            return self._rescan(config or self.config_manager.get(), folders)

    def apply_config(self, candidate: AppConfig) -> tuple[AppConfig, Optional[ScanReport]]:
        """Persist a new config and rescan if it changes what the catalog sees.

        Updates are serialized with rescans so the catalog always reflects the
        last accepted document.
        """
        with self.rescan_lock:
            previous = self.config_manager.get()
            updated = self.config_manager.update(candidate)
            if (
                updated.script_folders == previous.script_folders
                and updated.extension_commands == previous.extension_commands
            ):
                return updated, None
            return updated, self._rescan(updated, None)

    def _rescan(self, config: AppConfig, folders: Optional[list[str]]) -> ScanReport:
        targets = config.resolved_folders()
        for folder in folders or ():
            if folder not in targets:
                targets.append(folder)
        return self.catalog.load_folders(targets, config.extension_commands.keys())


def build_container(settings: Optional[Settings] = None) -> ApplicationContainer:
    settings = settings or get_settings()
    engine = build_engine(settings)
    session_factory = build_session_factory(engine)
    config_manager = ConfigManager(settings.config_file)
    catalog = CatalogManager(max_header_lines=settings.catalog.max_header_lines)
    history = HistoryStore(session_factory)
    events = EventManager()
    executor = ExecutionEngine(catalog, config_manager, history, settings.execution, events=events)
    return ApplicationContainer(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        config_manager=config_manager,
        catalog=catalog,
        history=history,
        events=events,
        executor=executor,
    )


__all__ = ["ApplicationContainer", "build_container"]
