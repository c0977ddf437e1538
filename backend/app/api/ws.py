from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from backend.app.services.broadcast import order_ws_manager

router = APIRouter()


@router.websocket("/ws/orders")
async def websocket_orders(websocket: WebSocket):
    """Live order feed: "new-order" and "order-update" events."""
    await order_ws_manager.connect(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        order_ws_manager.disconnect(websocket)
