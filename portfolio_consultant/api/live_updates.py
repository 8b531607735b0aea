from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from portfolio_consultant.services.live_updates import hub

logger = logging.getLogger(__name__)

router = APIRouter()


def _reply_to(message: Any) -> dict[str, Any] | None:
    if not isinstance(message, dict):
        return {"type": "error", "error": "Messages must be JSON objects."}
    kind = message.get("type")
    if kind == "ping":
        return {"type": "pong", "timestamp": datetime.now(UTC).isoformat()}
    if kind == "subscribe":
        channel = message.get("channel") or "stock_alerts"
        return {
            "type": "subscribed",
            "channel": channel,
            "message": f"Subscribed to {channel}",
        }
    return None


@router.websocket("/ws")
async def live_updates_ws(websocket: WebSocket) -> None:
    """Push ``stock_update`` and ``alert_trigger`` events to clients.

    Protocol:
      - client sends: {"type": "ping"} or {"type": "subscribe", "channel": "..."}
      - server sends: {"type": "pong"|"subscribed"|"stock_update"|"alert_trigger", ...}
    """

    await websocket.accept()
    hub.register(websocket)
    await websocket.send_json(
        {"type": "connection", "message": "Connected to Portfolio Consultant live updates"}
    )
    try:
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                await websocket.send_json({"type": "error", "error": "Invalid JSON."})
                continue
            reply = _reply_to(message)
            if reply is not None:
                await websocket.send_json(reply)
    except WebSocketDisconnect:
        pass
    finally:
        hub.unregister(websocket)
        logger.debug("Live updates client disconnected")


__all__ = ["router"]
