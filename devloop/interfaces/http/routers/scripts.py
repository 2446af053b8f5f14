"""Script catalog endpoints."""
import logging
import os
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.concurrency import run_in_threadpool

from devloop.core.container import ApplicationContainer
from devloop.interfaces.http.deps import get_catalog, get_container
from devloop.modules.catalog import CatalogManager, launch_editor
from devloop.schemas import DeleteScriptResponse, ScriptDetail, ScriptSummary

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=list[ScriptSummary], summary="List cataloged scripts")
async def list_scripts(
    search: Optional[str] = None,
    category: Optional[str] = None,
    tag: Optional[str] = None,
    limit: Optional[int] = Query(default=None, ge=1),
    page: int = Query(default=1, ge=1),
    catalog: CatalogManager = Depends(get_catalog),
):
    scripts = catalog.list(search=search, category=category, tag=tag)
    if limit is not None:
        start = (page - 1) * limit
        scripts = scripts[start:start + limit]
    return [ScriptSummary.from_domain(script) for script in scripts]


@router.get("/{script_id}", response_model=ScriptDetail, summary="Get one script with its content")
async def get_script(script_id: str, catalog: CatalogManager = Depends(get_catalog)):
    script = catalog.get(script_id)
    try:
        content = await run_in_threadpool(script.read_content)
    except OSError as exc:
        logger.warning("Could not read %s: %s", script.path, exc)
        content = None
    return ScriptDetail(**ScriptSummary.from_domain(script).model_dump(), content=content)


@router.patch("/{script_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Open a script in the editor")
async def edit_script(script_id: str, container: ApplicationContainer = Depends(get_container)):
    script = container.catalog.get(script_id)
    launch_editor(container.config_manager.get().editor, script)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{script_id}", response_model=DeleteScriptResponse, summary="Remove a script")
async def delete_script(
    script_id: str,
    rm: bool = False,
    purge: bool = False,
    container: ApplicationContainer = Depends(get_container),
):
    script = container.catalog.get(script_id)
    if container.executor.is_running(script_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="script is running")

    file_removed = False
    if rm:
        try:
            os.remove(script.path)
            file_removed = True
        except FileNotFoundError:
            logger.info("Script file %s was already gone", script.path)
        except OSError as exc:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"could not delete {script.path}: {exc.strerror or exc}",
            ) from exc

    container.catalog.remove(script_id)
    purged = await container.history.purge_script(script_id) if purge else 0
    await container.events.publish(
        "script.deleted",
        {"script_id": script_id, "file_removed": file_removed, "purged_executions": purged},
    )
    return DeleteScriptResponse(id=script_id, file_removed=file_removed, purged_executions=purged)
