from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from realm.session import SessionView

logger = logging.getLogger(__name__)


class SessionWebSocketHub:
    """Fans session updates out to the sockets watching each session.

    A new watcher gets a `session_snapshot` right away; every mutation after
    that produces one `session_updated` message carrying the event types and
    the fresh view. Deleting a session closes its sockets.
    """

    def __init__(self) -> None:
        self._watchers: dict[str, set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def watch(self, session_id: str, websocket: WebSocket, *, snapshot: SessionView) -> None:
        await websocket.accept()
        async with self._lock:
            self._watchers[session_id].add(websocket)
        await websocket.send_json({"type": "session_snapshot", "session": snapshot.model_dump(mode="json")})

    async def unwatch(self, session_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            sockets = self._watchers.get(session_id)
            if sockets is None:
                return
            sockets.discard(websocket)
            if not sockets:
                del self._watchers[session_id]

    def watcher_count(self, session_id: str) -> int:
        return len(self._watchers.get(session_id, ()))

    async def _send_all(self, session_id: str, message: dict[str, object]) -> None:
        async with self._lock:
            sockets = list(self._watchers.get(session_id, ()))

        stale = []
        for ws in sockets:
            try:
                await ws.send_json(message)
            except Exception:
                stale.append(ws)

        for ws in stale:
            await self.unwatch(session_id, ws)

    async def publish_update(self, session_id: str, *, event_types: list[str], view: SessionView) -> None:
        if not event_types:
            return
        await self._send_all(
            session_id,
            {
                "type": "session_updated",
                "session_id": session_id,
                "events": event_types,
                "session": view.model_dump(mode="json"),
            },
        )

    async def close_session(self, session_id: str) -> None:
        async with self._lock:
            sockets = self._watchers.pop(session_id, set())

        for ws in sockets:
            if ws.client_state == WebSocketState.CONNECTED:
                await ws.close(code=1000, reason="session removed")
        if sockets:
            logger.debug("closed %d watcher(s) of session %s", len(sockets), session_id)


hub = SessionWebSocketHub()
