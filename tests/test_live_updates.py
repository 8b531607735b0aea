from __future__ import annotations

from typing import Any

import anyio
from fastapi.testclient import TestClient

from portfolio_consultant.main import app
from portfolio_consultant.services.live_updates import LiveUpdateHub

client = TestClient(app)


class _FakeSocket:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[dict[str, Any]] = []

    async def send_json(self, message: dict[str, Any]) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(message)


def test_websocket_handshake_ping_and_subscribe() -> None:
    with client.websocket_connect("/ws") as ws:
        welcome = ws.receive_json()
        assert welcome["type"] == "connection"

        ws.send_json({"type": "ping"})
        pong = ws.receive_json()
        assert pong["type"] == "pong"
        assert "timestamp" in pong

        ws.send_json({"type": "subscribe", "channel": "stock_alerts"})
        assert ws.receive_json() == {
            "type": "subscribed",
            "channel": "stock_alerts",
            "message": "Subscribed to stock_alerts",
        }

        ws.send_text("not json")
        assert ws.receive_json()["type"] == "error"

        ws.send_json(["not", "an", "object"])
        assert ws.receive_json()["type"] == "error"


def test_broadcast_drops_failing_sockets() -> None:
    hub = LiveUpdateHub()
    good = _FakeSocket()
    bad = _FakeSocket(fail=True)
    hub.register(good)  # type: ignore[arg-type]
    hub.register(bad)  # type: ignore[arg-type]

    delivered = anyio.run(hub.broadcast, {"type": "stock_update", "data": {"id": 1}})

    assert delivered == 1
    assert good.sent == [{"type": "stock_update", "data": {"id": 1}}]
    assert hub.connection_count == 1


def test_broadcast_from_plain_thread_is_skipped() -> None:
    hub = LiveUpdateHub()
    socket = _FakeSocket()
    hub.register(socket)  # type: ignore[arg-type]

    assert hub.broadcast_from_thread({"type": "alert_trigger", "data": {}}) == 0
    assert socket.sent == []

    assert LiveUpdateHub().broadcast_from_thread({"type": "noop"}) == 0
