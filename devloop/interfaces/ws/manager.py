"""Connection manager for change-subscription websocket clients."""
import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class EventManager:
    """Broadcasts catalog, config and execution changes to dashboard clients."""

    def __init__(self) -> None:
        self.connections: Dict[str, WebSocket] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket) -> str:
        await websocket.accept()
        client_id = uuid4().hex
        self.connections[client_id] = websocket
        logger.info("Event client %s connected (%d total)", client_id, len(self.connections))
        return client_id

    async def disconnect(self, client_id: str) -> None:
        if self.connections.pop(client_id, None) is not None:
            logger.info("Event client %s disconnected", client_id)

    async def send_message(self, client_id: str, message: dict) -> bool:
        websocket = self.connections.get(client_id)
        if websocket is None:
            return False
        try:
            await websocket.send_text(json.dumps(message, default=str))
            return True
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Sending event to client %s failed: %s", client_id, exc)
            await self.disconnect(client_id)
            return False

    async def publish(self, event_type: str, data: Optional[Dict[str, Any]] = None) -> int:
        """Send one event to every client; returns how many received it."""
        message = {
            "type": event_type,
            "data": data or {},
            "at": datetime.now(timezone.utc).isoformat(),
        }
        delivered = 0
        # keeps events in publish order for every client
        async with self._lock:
            for client_id in list(self.connections.keys()):
                if await self.send_message(client_id, message):
                    delivered += 1
        logger.debug("Published %s to %d client(s)", event_type, delivered)
        return delivered

    async def close_all(self) -> None:
        for client_id, websocket in list(self.connections.items()):
            try:
                await websocket.close()
            except Exception:  # pylint: disable=broad-except
                logger.debug("Event client %s already closed", client_id)
            await self.disconnect(client_id)
