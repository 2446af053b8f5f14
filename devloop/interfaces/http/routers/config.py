"""AppConfig read and replace endpoints."""
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from devloop.core.container import ApplicationContainer
from devloop.interfaces.http.deps import get_container
from devloop.modules.config import AppConfig, ConfigValidationError

logger = logging.getLogger(__name__)

router = APIRouter()


def _validation_messages(exc: ValidationError) -> list[str]:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "config"
        messages.append(f"{location}: {error.get('msg', 'invalid value')}")
    return messages


@router.get("", summary="Read the application configuration")
async def read_config(container: ApplicationContainer = Depends(get_container)) -> dict[str, Any]:
    return container.config_manager.get().to_document()


@router.post("", summary="Replace the application configuration")
async def replace_config(
    document: dict[str, Any] = Body(...),
    container: ApplicationContainer = Depends(get_container),
) -> dict[str, Any]:
    try:
        candidate = AppConfig.model_validate(document)
    except ValidationError as exc:
        raise ConfigValidationError(_validation_messages(exc)) from exc

    updated, report = await run_in_threadpool(container.apply_config, candidate)
    await container.events.publish("config.updated", updated.to_document())
    if report is not None:
        await container.events.publish(
            "catalog.reloaded",
            {"total": report.total, "added": len(report.added), "removed": len(report.removed)},
        )
    return updated.to_document()
