"""Durable execution history."""

from .exceptions import ExecutionInFlightError, ExecutionNotFoundError, HistoryError, RedactionError, StoreWriteError
from .models import ExecutionRecord, ExecutionStatus, new_execution_id
from .redaction import REDACTED, scrub
from .service import HistoryService, HistoryStore

__all__ = [
    "ExecutionRecord",
    "ExecutionStatus",
    "new_execution_id",
    "HistoryService",
    "HistoryStore",
    "REDACTED",
    "scrub",
    "HistoryError",
    "ExecutionNotFoundError",
    "ExecutionInFlightError",
    "StoreWriteError",
    "RedactionError",
]
