from fastapi import APIRouter, Depends

from devloop.core.security import require_api_key
from devloop.interfaces.http.routers import actions, categories, config, history, scripts


def create_api_router(prefix: str = "") -> APIRouter:
    router = APIRouter(prefix=prefix, dependencies=[Depends(require_api_key)])
    router.include_router(config.router, prefix="/config", tags=["config"])
    router.include_router(scripts.router, prefix="/scripts", tags=["scripts"])
    router.include_router(actions.router, prefix="/actions", tags=["actions"])
    router.include_router(history.router, prefix="/history", tags=["history"])
    router.include_router(categories.router, prefix="/categories", tags=["categories"])
    return router


__all__ = [
    "create_api_router",
]
