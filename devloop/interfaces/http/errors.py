"""Mapping of domain exceptions onto HTTP error responses."""

import logging
from typing import Any, Callable

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from devloop.modules.catalog import EditorLaunchError, ScriptNotFoundError
from devloop.modules.config import ConfigPersistError, ConfigValidationError
from devloop.modules.execution import (
    ExecutionCancelledError,
    ExecutionTimedOutError,
    InputValidationError,
    ProcessSpawnError,
    ScriptBusyError,
    UnsupportedExtensionError,
)
from devloop.modules.history import ExecutionInFlightError, ExecutionNotFoundError, StoreWriteError

logger = logging.getLogger(__name__)


def _body(kind: str, exc: Exception, **extra: Any) -> dict[str, Any]:
    body: dict[str, Any] = {"error": kind, "detail": str(exc)}
    body.update({key: value for key, value in extra.items() if value is not None})
    return body


def _simple(kind: str, status_code: int) -> Callable[[Request, Exception], JSONResponse]:
    async def handler(_request: Request, exc: Exception) -> JSONResponse:
        if status_code >= 500:
            logger.error("%s: %s", kind, exc)
        return JSONResponse(status_code=status_code, content=_body(kind, exc))

    return handler


async def _config_validation(_request: Request, exc: ConfigValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_body("ConfigValidationError", exc, errors=exc.errors),
    )


async def _input_validation(_request: Request, exc: InputValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_body("InputValidationError", exc, errors=exc.errors),
    )


async def _spawn_failed(_request: Request, exc: ProcessSpawnError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_body("ProcessSpawnError", exc, execution_id=exc.execution_id),
    )


async def _timed_out(_request: Request, exc: ExecutionTimedOutError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_504_GATEWAY_TIMEOUT,
        content=_body(
            "ExecutionTimedOutError",
            exc,
            execution_id=exc.result.execution_id,
            output=exc.result.output,
        ),
    )


async def _cancelled(_request: Request, exc: ExecutionCancelledError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=_body(
            "ExecutionCancelledError",
            exc,
            execution_id=exc.result.execution_id,
            output=exc.result.output,
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ConfigValidationError, _config_validation)
    app.add_exception_handler(InputValidationError, _input_validation)
    app.add_exception_handler(ProcessSpawnError, _spawn_failed)
    app.add_exception_handler(ExecutionTimedOutError, _timed_out)
    app.add_exception_handler(ExecutionCancelledError, _cancelled)
    app.add_exception_handler(ScriptNotFoundError, _simple("ScriptNotFoundError", status.HTTP_404_NOT_FOUND))
    app.add_exception_handler(ExecutionNotFoundError, _simple("ExecutionNotFoundError", status.HTTP_404_NOT_FOUND))
    app.add_exception_handler(
        UnsupportedExtensionError,
        _simple("UnsupportedExtensionError", status.HTTP_422_UNPROCESSABLE_ENTITY),
    )
    app.add_exception_handler(ScriptBusyError, _simple("ScriptBusyError", status.HTTP_409_CONFLICT))
    app.add_exception_handler(ExecutionInFlightError, _simple("ExecutionInFlightError", status.HTTP_409_CONFLICT))
    app.add_exception_handler(StoreWriteError, _simple("StoreWriteError", status.HTTP_500_INTERNAL_SERVER_ERROR))
    app.add_exception_handler(ConfigPersistError, _simple("ConfigPersistError", status.HTTP_500_INTERNAL_SERVER_ERROR))
    app.add_exception_handler(EditorLaunchError, _simple("EditorLaunchError", status.HTTP_500_INTERNAL_SERVER_ERROR))


__all__ = ["register_exception_handlers"]
