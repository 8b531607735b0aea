from __future__ import annotations

import logging
from typing import Any, Dict, Set

import anyio.from_thread
from fastapi import WebSocket

logger = logging.getLogger(__name__)


class LiveUpdateHub:
    """Fan-out of JSON messages to every connected ``/ws`` client.

    Delivery is best-effort: a socket that fails to receive is dropped.
    """

    def __init__(self) -> None:
        self._connections: Set[WebSocket] = set()

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def register(self, websocket: WebSocket) -> None:
        self._connections.add(websocket)

    def unregister(self, websocket: WebSocket) -> None:
        self._connections.discard(websocket)

    async def broadcast(self, message: Dict[str, Any]) -> int:
        delivered = 0
        for websocket in list(self._connections):
            try:
                await websocket.send_json(message)
            except Exception:
                self.unregister(websocket)
                continue
            delivered += 1
        return delivered

    def broadcast_from_thread(self, message: Dict[str, Any]) -> int:
        """Broadcast from a sync endpoint running in the worker threadpool."""

        if not self._connections:
            return 0
        try:
            return anyio.from_thread.run(self.broadcast, message)
        except RuntimeError:
            # Called outside an AnyIO worker thread, e.g. from a script.
            logger.debug("Live update skipped outside event loop worker thread")
            return 0


hub = LiveUpdateHub()


def publish_stock_update(alert_payload: Dict[str, Any]) -> int:
    return hub.broadcast_from_thread({"type": "stock_update", "data": alert_payload})


def publish_alert_trigger(trigger_payload: Dict[str, Any]) -> int:
    return hub.broadcast_from_thread({"type": "alert_trigger", "data": trigger_payload})


__all__ = ["LiveUpdateHub", "hub", "publish_alert_trigger", "publish_stock_update"]
