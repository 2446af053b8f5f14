"""Domain representation of execution history records."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from devloop.db import models as orm


class ExecutionStatus(str, Enum):
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"
    SPAWN_FAILED = "spawn_failed"
    INTERRUPTED = "interrupted"

    @property
    def is_final(self) -> bool:
        return self is not ExecutionStatus.RUNNING


def new_execution_id(script_id: str, started_ns: int) -> str:
    """Ids sort lexicographically in start order."""
    return f"{started_ns:020d}-{script_id}"


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(slots=True)
class ExecutionRecord:
    id: str
    script_id: str
    command: str
    started_at: datetime
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    script_name: Optional[str] = None
    script_path: Optional[str] = None
    status: ExecutionStatus = ExecutionStatus.RUNNING
    exit_code: Optional[int] = None
    output: Optional[str] = None
    output_truncated: bool = False
    error_message: Optional[str] = None
    incognito: bool = False
    finished_at: Optional[datetime] = None

    @property
    def duration_ms(self) -> Optional[int]:
        if self.finished_at is None:
            return None
        return int((self.finished_at - self.started_at).total_seconds() * 1000)

    @classmethod
    def from_orm(cls, instance: orm.ExecutionRecord) -> "ExecutionRecord":
        return cls(
            id=instance.id,
            script_id=instance.script_id,
            script_name=instance.script_name,
            script_path=instance.script_path,
            command=instance.command or "",
            args=_load_json(instance.args, list),
            env=_load_json(instance.env, dict),
            status=ExecutionStatus(instance.status),
            exit_code=instance.exit_code,
            output=instance.output,
            output_truncated=bool(instance.output_truncated),
            error_message=instance.error_message,
            incognito=bool(instance.incognito),
            started_at=as_utc(instance.started_at),
            finished_at=as_utc(instance.finished_at),
        )


def _load_json(raw: Optional[str], kind: type):
    if not raw:
        return kind()
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        return kind()
    return value if isinstance(value, kind) else kind()
