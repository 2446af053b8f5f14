"""Catalog reload and script execution actions."""
import logging
import os
from typing import Optional, Union

from fastapi import APIRouter, Body, Depends
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse

from devloop.core.container import ApplicationContainer
from devloop.interfaces.http.deps import get_container, get_executor
from devloop.modules.execution import ExecutionEngine, ExecutionRequest
from devloop.schemas import (
    CancelResponse,
    ExecutionBody,
    LoadScriptsRequest,
    RunningExecutionResponse,
    ScanReportResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _arg_text(value: Union[str, int, float, bool]) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@router.post("/scripts/load", response_model=ScanReportResponse, summary="Rescan script folders")
async def load_scripts(
    payload: Optional[LoadScriptsRequest] = Body(default=None),
    container: ApplicationContainer = Depends(get_container),
):
    folders = None
    if payload is not None and payload.folders is not None:
        folders = [os.path.expanduser(folder) for folder in payload.folders]
    report = await run_in_threadpool(container.rescan, None, folders)
    await container.events.publish(
        "catalog.reloaded",
        {"total": report.total, "added": len(report.added), "removed": len(report.removed)},
    )
    return ScanReportResponse.from_domain(report)


@router.post("/exec/scripts/{script_id}", response_class=PlainTextResponse, summary="Run a script")
async def execute_script(
    script_id: str,
    incognito: bool = False,
    payload: Optional[ExecutionBody] = Body(default=None),
    engine: ExecutionEngine = Depends(get_executor),
):
    payload = payload or ExecutionBody()
    request = ExecutionRequest(
        args=[_arg_text(arg) for arg in payload.args],
        env=dict(payload.env or {}),
        command=payload.command,
        inputs=payload.inputs,
        incognito=incognito,
    )
    result = await engine.execute(script_id, request)
    return PlainTextResponse(
        result.output,
        headers={
            "X-Execution-Id": result.execution_id,
            "X-Exit-Code": "" if result.exit_code is None else str(result.exit_code),
            "X-Execution-Status": result.status.value,
            "X-Output-Truncated": "true" if result.record.output_truncated else "false",
        },
    )


@router.get("/exec/running", response_model=list[RunningExecutionResponse], summary="Running executions")
async def list_running(engine: ExecutionEngine = Depends(get_executor)):
    return [RunningExecutionResponse.from_domain(item) for item in engine.running()]


@router.post("/cancel/scripts/{script_id}", response_model=CancelResponse, summary="Cancel a running script")
async def cancel_script(script_id: str, engine: ExecutionEngine = Depends(get_executor)):
    running = engine.cancel(script_id)
    return CancelResponse(execution_id=running.execution_id, script_id=running.script_id)
