"""Domain representations for script executions."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from devloop.modules.history.models import ExecutionRecord, ExecutionStatus


@dataclass(slots=True)
class ExecutionRequest:
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    command: str = ""
    inputs: Optional[dict[str, Any]] = None
    incognito: bool = False


@dataclass(frozen=True, slots=True)
class PreparedCommand:
    """Everything needed to run a script, captured when the request arrives."""

    script_id: str
    script_name: str
    script_path: str
    cwd: str
    argv: tuple[str, ...]
    display_command: str
    args: tuple[str, ...]
    caller_env: dict[str, str]
    process_env: dict[str, str]


@dataclass(slots=True)
class RunningExecution:
    execution_id: str
    script_id: str
    started_at: datetime
    incognito: bool
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)
    pid: Optional[int] = None


@dataclass(slots=True)
class ExecutionResult:
    """Outcome handed back to the caller; ``output`` is never scrubbed."""

    record: ExecutionRecord
    output: str

    @property
    def execution_id(self) -> str:
        return self.record.id

    @property
    def exit_code(self) -> Optional[int]:
        return self.record.exit_code

    @property
    def status(self) -> ExecutionStatus:
        return self.record.status
