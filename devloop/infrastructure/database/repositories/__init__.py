"""SQLAlchemy-backed repository implementations."""

from .execution_repository import SqlExecutionRepository

__all__ = ["SqlExecutionRepository"]
