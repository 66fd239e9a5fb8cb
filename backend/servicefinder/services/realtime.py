import asyncio
import logging
from typing import Any, Dict, List, Optional

from fastapi import WebSocket

from servicefinder import config
from servicefinder.models import Listing, ListingEvent

logger = logging.getLogger(__name__)

NEW_LISTING_EVENT = "new_service_listing"


class ConnectionRegistry:
    """Connected viewers of the listings feed.

    ``connect`` and ``disconnect`` are the only mutators; both run on the
    event loop, so no locking is needed.
    """

    def __init__(self) -> None:
        self._connections: set[WebSocket] = set()

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections.add(websocket)
        logger.info("Realtime viewer connected (%d online)", len(self._connections))

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self._connections:
            self._connections.discard(websocket)
            logger.info("Realtime viewer disconnected (%d online)", len(self._connections))

    def snapshot(self) -> List[WebSocket]:
        return list(self._connections)

    def __len__(self) -> int:
        return len(self._connections)


class RealtimeNotifier:
    """Fire-and-forget fan-out; viewers that are offline simply miss the event.

    Sends run concurrently and each is bounded by ``send_timeout``, so one
    stalled viewer cannot hold up the request that triggered the broadcast.
    """

    def __init__(self, registry: ConnectionRegistry, send_timeout: Optional[float] = None) -> None:
        self._registry = registry
        self._send_timeout = send_timeout if send_timeout is not None else config.REALTIME_SEND_TIMEOUT_SECONDS

    async def _send(self, websocket: WebSocket, message: Dict[str, Any]) -> bool:
        try:
            await asyncio.wait_for(websocket.send_json(message), timeout=self._send_timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning("Dropping realtime viewer after send timed out (%.1fs)", self._send_timeout)
        except Exception:
            logger.warning("Dropping realtime viewer after failed send", exc_info=True)
        self._registry.disconnect(websocket)
        return False

    async def broadcast(self, message: Dict[str, Any]) -> int:
        viewers = self._registry.snapshot()
        results = await asyncio.gather(*(self._send(websocket, message) for websocket in viewers))
        delivered = sum(1 for ok in results if ok)
        logger.info("Broadcast %s to %d/%d viewers", message.get("event"), delivered, len(viewers))
        return delivered

    async def broadcast_new_listing(self, listing: Listing) -> int:
        event = ListingEvent(event=NEW_LISTING_EVENT, data=listing)
        return await self.broadcast(event.model_dump(mode="json"))


connection_registry = ConnectionRegistry()
realtime_notifier = RealtimeNotifier(registry=connection_registry)
