"""Execution history specific exceptions."""


class HistoryError(Exception):
    """Base class for execution history errors."""


class ExecutionNotFoundError(HistoryError):
    """Raised when the requested execution record does not exist."""


class StoreWriteError(HistoryError):
    """Raised when an execution record could not be persisted."""


class RedactionError(HistoryError):
    """Raised when incognito fields could not be scrubbed before a write."""


class ExecutionInFlightError(HistoryError):
    """Raised when a record is modified while its execution is still running."""
