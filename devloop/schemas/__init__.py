"""Pydantic schemas used across the project."""
from datetime import datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from devloop.modules.catalog import CategoryCount, ScanReport, Script, ScriptInput
from devloop.modules.execution import RunningExecution
from devloop.modules.history import ExecutionRecord


class ScriptInputSchema(BaseModel):
    name: str
    type: str
    required: bool = False
    default: Optional[Union[bool, int, float, str]] = None
    description: str = ""
    options: Optional[list[str]] = None

    @classmethod
    def from_domain(cls, spec: ScriptInput) -> "ScriptInputSchema":
        return cls(
            name=spec.name,
            type=spec.type.value,
            required=spec.required,
            default=spec.default,
            description=spec.description,
            options=list(spec.options) if spec.options is not None else None,
        )


class ScriptSummary(BaseModel):
    id: str
    name: str
    description: str = ""
    author: str = ""
    version: str = ""
    category: str = ""
    tags: list[str] = Field(default_factory=list)
    inputs: list[ScriptInputSchema] = Field(default_factory=list)
    path: str
    lastExecuted: Optional[datetime] = None

    @classmethod
    def from_domain(cls, script: Script, last_executed: Optional[datetime] = None) -> "ScriptSummary":
        return cls(
            id=script.id,
            name=script.name,
            description=script.description,
            author=script.author,
            version=script.version,
            category=script.category,
            tags=list(script.tags),
            inputs=[ScriptInputSchema.from_domain(spec) for spec in script.inputs],
            path=script.path,
            lastExecuted=last_executed,
        )


class ScriptDetail(ScriptSummary):
    content: Optional[str] = None


class ExecuteRequestSchema(BaseModel):
    command: str = ""
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)


class ExecutionBody(BaseModel):
    """Body of an execute call; ``inputs`` takes precedence over ``args``."""

    model_config = ConfigDict(extra="ignore")

    command: str = ""
    args: list[Union[str, int, float, bool]] = Field(default_factory=list)
    env: Optional[dict[str, str]] = None
    inputs: Optional[dict[str, Any]] = None


class ExecutionRecordResponse(BaseModel):
    id: str
    script_id: str
    script_name: Optional[str] = None
    executed_at: datetime
    finished_at: Optional[datetime] = None
    exitcode: Optional[int] = None
    status: str
    execute_request: ExecuteRequestSchema
    output: Optional[str] = None
    output_truncated: bool = False
    error_message: Optional[str] = None
    incognito: bool = False
    duration_ms: Optional[int] = None

    @classmethod
    def from_domain(cls, record: ExecutionRecord) -> "ExecutionRecordResponse":
        return cls(
            id=record.id,
            script_id=record.script_id,
            script_name=record.script_name,
            executed_at=record.started_at,
            finished_at=record.finished_at,
            exitcode=record.exit_code,
            status=record.status.value,
            execute_request=ExecuteRequestSchema(
                command=record.command,
                args=list(record.args),
                env=dict(record.env),
            ),
            output=record.output,
            output_truncated=record.output_truncated,
            error_message=record.error_message,
            incognito=record.incognito,
            duration_ms=record.duration_ms,
        )


class LoadScriptsRequest(BaseModel):
    folders: Optional[list[str]] = None


class ScanErrorSchema(BaseModel):
    folder: str
    reason: str


class ScanReportResponse(BaseModel):
    total: int
    added: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
    updated: list[str] = Field(default_factory=list)
    errors: list[ScanErrorSchema] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, report: ScanReport) -> "ScanReportResponse":
        return cls(
            total=report.total,
            added=report.added,
            removed=report.removed,
            updated=report.updated,
            errors=[ScanErrorSchema(folder=error.folder, reason=error.reason) for error in report.errors],
            warnings=report.warnings,
        )


class CategoryResponse(BaseModel):
    category: str
    count: int

    @classmethod
    def from_domain(cls, item: CategoryCount) -> "CategoryResponse":
        return cls(category=item.category, count=item.count)


class RunningExecutionResponse(BaseModel):
    execution_id: str
    script_id: str
    started_at: datetime
    incognito: bool
    pid: Optional[int] = None

    @classmethod
    def from_domain(cls, running: RunningExecution) -> "RunningExecutionResponse":
        return cls(
            execution_id=running.execution_id,
            script_id=running.script_id,
            started_at=running.started_at,
            incognito=running.incognito,
            pid=running.pid,
        )


class CancelResponse(BaseModel):
    execution_id: str
    script_id: str
    cancelling: bool = True


class DeleteScriptResponse(BaseModel):
    id: str
    file_removed: bool = False
    purged_executions: int = 0
