"""Execution specific exceptions.

A script that runs and exits nonzero is not an error; these cover the cases
where the engine could not run the script, or stopped it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ExecutionResult


class ExecutionError(Exception):
    """Base class for execution errors."""


class UnsupportedExtensionError(ExecutionError):
    """Raised when no interpreter is configured for the script's extension."""

    def __init__(self, script_id: str, extension: str) -> None:
        self.script_id = script_id
        self.extension = extension
        shown = extension or "(none)"
        super().__init__(f"no interpreter configured for extension {shown}")


class ScriptBusyError(ExecutionError):
    """Raised when the script is already running and the busy policy rejects."""


class InputValidationError(ExecutionError):
    """Raised when supplied input values do not match the declared inputs."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class ProcessSpawnError(ExecutionError):
    """Raised when the interpreter process could not be started."""

    def __init__(self, message: str, execution_id: str) -> None:
        self.execution_id = execution_id
        super().__init__(message)


class _FinishedExecutionError(ExecutionError):
    def __init__(self, message: str, result: "ExecutionResult") -> None:
        self.result = result
        super().__init__(message)


class ExecutionTimedOutError(_FinishedExecutionError):
    """Raised after a run was stopped for exceeding the configured timeout."""


class ExecutionCancelledError(_FinishedExecutionError):
    """Raised after a run was stopped by a cancellation request."""
