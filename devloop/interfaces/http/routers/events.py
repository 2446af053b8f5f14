"""Change-subscription websocket."""
import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from devloop.core.security import is_authorized

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws/events")
async def events_socket(websocket: WebSocket, token: Optional[str] = Query(default=None)):
    container = websocket.app.state.container
    if not is_authorized(container.settings, token):
        logger.warning("Rejected event subscription with an invalid token")
        await websocket.close(code=1008, reason="invalid API key")
        return

    manager = container.events
    client_id = await manager.connect(websocket)
    try:
        while True:
            # clients only listen; incoming frames are keepalives
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Event client %s went away", client_id)
    finally:
        await manager.disconnect(client_id)
