"""API key authentication helpers."""
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from devloop.core.config import Settings
from devloop.core.crypto import constant_time_equals, verify_api_key

security = HTTPBearer(auto_error=False)


def is_authorized(settings: Settings, token: Optional[str]) -> bool:
    """Check a presented token against the configured key or key hash."""
    if not settings.auth_enabled:
        return True
    if not token:
        return False
    if settings.security.api_key and constant_time_equals(token, settings.security.api_key):
        return True
    if settings.security.api_key_hash and verify_api_key(token, settings.security.api_key_hash):
        return True
    return False


def extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if credentials is not None:
        return credentials.credentials
    # clients that store the bare key send it without a scheme
    header = request.headers.get("Authorization", "").strip()
    return header or None


async def require_api_key(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> None:
    settings: Settings = request.app.state.container.settings
    if not is_authorized(settings, extract_token(request, credentials)):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="missing or invalid API key",
            headers={"WWW-Authenticate": "Bearer"},
        )


__all__ = ["is_authorized", "extract_token", "require_api_key", "security"]
