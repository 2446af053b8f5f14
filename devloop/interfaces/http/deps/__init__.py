"""Reusable FastAPI dependencies."""

from .services import get_catalog, get_container, get_executor, get_history

__all__ = [
    "get_container",
    "get_catalog",
    "get_history",
    "get_executor",
]
