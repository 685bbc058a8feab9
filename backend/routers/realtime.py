import asyncio
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from stock.realtime import RealtimeBridge, get_bridge, notification_message

logger = structlog.get_logger(__name__)

router = APIRouter()


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/ws")
async def realtime_feed(
    websocket: WebSocket,
    user_id: Optional[str] = None,
    bridge: RealtimeBridge = Depends(get_bridge),
):
    """Push change events caused by other users to this connection."""
    subscription = bridge.subscribe(user_id)
    listener = None
    try:
        await websocket.accept()
        logger.info("realtime_subscribed", user_id=user_id, channel=subscription.channel)
        listener = asyncio.ensure_future(_wait_for_disconnect(websocket))
        while True:
            getter = asyncio.ensure_future(subscription.next_event())
            done, _ = await asyncio.wait({listener, getter}, return_when=asyncio.FIRST_COMPLETED)
            if getter not in done:
                getter.cancel()
                break
            event = getter.result()
            message = event.payload
            message["notification"] = notification_message(event)
            await websocket.send_json(message)
        logger.info("realtime_disconnected", user_id=user_id)
    except WebSocketDisconnect:
        logger.info("realtime_disconnected", user_id=user_id)
    finally:
        if listener is not None and not listener.done():
            listener.cancel()
        bridge.unsubscribe(subscription)
