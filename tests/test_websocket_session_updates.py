from __future__ import annotations

import pytest
from starlette.websockets import WebSocketDisconnect

from realm.websocket_hub import hub


def test_ws_session_updates_broadcast(client_and_redis) -> None:  # type: ignore[no-untyped-def]
    client, _, _ = client_and_redis
    sid = client.post("/sessions", json={}).json()["session_id"]

    with client.websocket_connect(f"/ws/sessions/{sid}") as ws:
        snapshot = ws.receive_json()
        assert snapshot["type"] == "session_snapshot"
        assert snapshot["session"]["session_id"] == sid
        assert snapshot["session"]["stability"]["zone"] == "balanced"

        res = client.post(f"/sessions/{sid}/swipe", json={"correct": True})
        assert res.status_code == 200

        msg = ws.receive_json()
        assert msg["type"] == "session_updated"
        assert msg["session_id"] == sid
        assert msg["events"] == ["SWIPE_APPLIED"]
        assert msg["session"]["stats"]["correct_swipes"] == 1

        client.post(f"/sessions/{sid}/end")
        msg = ws.receive_json()
        assert msg["events"] == ["SESSION_ENDED"]
        assert msg["session"]["phase"] == "ended"


def test_ws_unknown_session_is_refused(client_and_redis) -> None:  # type: ignore[no-untyped-def]
    client, _, _ = client_and_redis
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws/sessions/nope") as ws:
            ws.receive_json()


def test_ws_closed_when_session_is_deleted(client_and_redis) -> None:  # type: ignore[no-untyped-def]
    client, _, _ = client_and_redis
    sid = client.post("/sessions", json={}).json()["session_id"]

    with client.websocket_connect(f"/ws/sessions/{sid}") as ws:
        ws.receive_json()
        assert hub.watcher_count(sid) == 1

        assert client.delete(f"/sessions/{sid}").status_code == 204
        msg = ws.receive()
        assert msg["type"] == "websocket.close"
        assert hub.watcher_count(sid) == 0
