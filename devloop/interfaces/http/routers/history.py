"""Execution history endpoints."""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from devloop.core.container import ApplicationContainer
from devloop.interfaces.http.deps import get_container, get_history
from devloop.modules.history import ExecutionRecord, HistoryStore
from devloop.schemas import ExecutionRecordResponse, ScriptSummary

router = APIRouter()


def _summary_for(container: ApplicationContainer, record: ExecutionRecord) -> ScriptSummary:
    script = container.catalog.find(record.script_id)
    if script is not None:
        return ScriptSummary.from_domain(script, last_executed=record.started_at)
    # the script left the catalog; fall back to what the record captured
    return ScriptSummary(
        id=record.script_id,
        name=record.script_name or record.script_id,
        path=record.script_path or "",
        lastExecuted=record.started_at,
    )


@router.get("/scripts/recent", response_model=list[ScriptSummary], summary="Recently run scripts")
async def recent_scripts(
    limit: int = Query(default=10, ge=1, le=500),
    container: ApplicationContainer = Depends(get_container),
):
    records = await container.history.recent(limit)
    return [_summary_for(container, record) for record in records]


@router.get(
    "/scripts/{script_id}",
    response_model=list[ExecutionRecordResponse],
    summary="Execution history of one script",
)
async def script_history(
    script_id: str,
    limit: int = Query(default=20, ge=1, le=1000),
    before: Optional[datetime] = None,
    page: int = Query(default=1, ge=1),
    history: HistoryStore = Depends(get_history),
):
    records = await history.by_script(
        script_id,
        limit=limit,
        before=before,
        offset=(page - 1) * limit,
    )
    return [ExecutionRecordResponse.from_domain(record) for record in records]


@router.get("/{execution_id}", response_model=ExecutionRecordResponse, summary="One execution")
async def get_execution(execution_id: str, history: HistoryStore = Depends(get_history)):
    return ExecutionRecordResponse.from_domain(await history.get(execution_id))


@router.delete("/{execution_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete one execution")
async def delete_execution(execution_id: str, container: ApplicationContainer = Depends(get_container)):
    await container.history.delete(execution_id)
    await container.events.publish("history.deleted", {"execution_id": execution_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)
