# backend/app/services/broadcast.py
"""Real-time order events pushed to staff dashboards over WebSocket."""
import asyncio
from typing import Any, Dict, List

from fastapi import WebSocket

from backend.app.core.logging import get_logger

logger = get_logger(__name__)

EVENT_NEW_ORDER = "new-order"
EVENT_ORDER_UPDATE = "order-update"


class OrderWebSocketManager:
    """Tracks connected /ws/orders clients and fans messages out to them."""

    def __init__(self):
        self.active_connections: List[WebSocket] = []
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self.active_connections.append(websocket)
        logger.info("Order feed client connected", clients=len(self.active_connections))

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
        logger.info("Order feed client disconnected", clients=len(self.active_connections))

    async def broadcast(self, message: Dict[str, Any]) -> int:
        """Send to every client; dead connections are dropped. Returns delivered count."""
        async with self._lock:
            connections = list(self.active_connections)
        delivered = 0
        for websocket in connections:
            try:
                await websocket.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning("Dropping order feed client after send failure", error=str(e))
                self.disconnect(websocket)
        return delivered


class OrderBroadcaster:
    def __init__(self, manager: OrderWebSocketManager):
        self.manager = manager

    async def emit_new_order(self, order: Dict[str, Any]) -> int:
        return await self.manager.broadcast({"event": EVENT_NEW_ORDER, "order": order})

    async def emit_order_status_update(self, order: Dict[str, Any]) -> int:
        return await self.manager.broadcast({"event": EVENT_ORDER_UPDATE, "order": order})


order_ws_manager = OrderWebSocketManager()
