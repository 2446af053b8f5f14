import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from devloop import __version__
from devloop.api import create_api_router
from devloop.core.config import Settings, get_settings
from devloop.core.container import build_container
from devloop.core.logging_setup import configure_logging
from devloop.interfaces.http.errors import register_exception_handlers
from devloop.interfaces.http.routers import events as events_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    container = app.state.container
    await container.startup()
    try:
        yield
    finally:
        await container.shutdown()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.server.log_level)

    app = FastAPI(
        title=settings.project_name,
        description="Local script catalog and execution service",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = build_container(settings)

    # the dashboard is served from another local origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Execution-Id", "X-Exit-Code", "X-Execution-Status", "X-Output-Truncated"],
    )

    register_exception_handlers(app)
    app.include_router(create_api_router(settings.api_prefix))
    app.include_router(events_router.router)

    @app.get("/health", include_in_schema=False)
    async def health() -> dict:
        return {"status": "ok", "version": __version__}

    return app
