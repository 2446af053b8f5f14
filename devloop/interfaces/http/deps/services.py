"""Component dependency providers resolved from the application container."""

from fastapi import Depends, Request

from devloop.core.container import ApplicationContainer
from devloop.modules.catalog import CatalogManager
from devloop.modules.execution import ExecutionEngine
from devloop.modules.history import HistoryStore


def get_container(request: Request) -> ApplicationContainer:
    return request.app.state.container


def get_catalog(container: ApplicationContainer = Depends(get_container)) -> CatalogManager:
    return container.catalog


def get_history(container: ApplicationContainer = Depends(get_container)) -> HistoryStore:
    return container.history


def get_executor(container: ApplicationContainer = Depends(get_container)) -> ExecutionEngine:
    return container.executor


__all__ = [
    "get_container",
    "get_catalog",
    "get_history",
    "get_executor",
]
