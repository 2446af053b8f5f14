"""Script execution: interpreter resolution, process supervision, serialization."""

from .exceptions import (
    ExecutionCancelledError,
    ExecutionError,
    ExecutionTimedOutError,
    InputValidationError,
    ProcessSpawnError,
    ScriptBusyError,
    UnsupportedExtensionError,
)
from .inputs import coerce_value, resolve_inputs
from .models import ExecutionRequest, ExecutionResult, PreparedCommand, RunningExecution
from .process import BoundedBuffer
from .service import ExecutionEngine, prepare_command

__all__ = [
    "ExecutionEngine",
    "ExecutionRequest",
    "ExecutionResult",
    "PreparedCommand",
    "RunningExecution",
    "BoundedBuffer",
    "prepare_command",
    "coerce_value",
    "resolve_inputs",
    "ExecutionError",
    "ExecutionCancelledError",
    "ExecutionTimedOutError",
    "InputValidationError",
    "ProcessSpawnError",
    "ScriptBusyError",
    "UnsupportedExtensionError",
]
