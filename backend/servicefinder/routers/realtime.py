import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from servicefinder.services.realtime import connection_registry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def listings_feed(websocket: WebSocket):
    await connection_registry.connect(websocket)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.debug("Realtime viewer closed the feed (code=%s)", message.get("code"))
                break
            # Binary frames carry no commands.
            text = message.get("text")
            if text and text.strip().lower() == "ping":
                await websocket.send_json({"event": "pong"})
    except WebSocketDisconnect as exc:
        logger.debug("Realtime viewer closed the feed (code=%s)", exc.code)
    finally:
        connection_registry.disconnect(websocket)
