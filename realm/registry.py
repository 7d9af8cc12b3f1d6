from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from realm.config import SessionConfig
from realm.core.events import SessionEvent
from realm.session import GameSession

logger = logging.getLogger(__name__)

# Finished sessions stay readable for a while after their result is stored.
DEFAULT_KEEP_ENDED = 64


@dataclass(slots=True)
class SessionHandle:
    """A live session plus the lock that serializes every mutation to it."""

    session: GameSession
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    outbox: list[SessionEvent] = field(default_factory=list)
    # Set while a server-side clock is ticking this session.
    clock: asyncio.Task[int] | None = None

    def drain(self) -> list[SessionEvent]:
        events = list(self.outbox)
        self.outbox.clear()
        return events

    @property
    def clock_running(self) -> bool:
        return self.clock is not None and not self.clock.done()

    def stop_clock(self) -> None:
        if self.clock_running:
            assert self.clock is not None
            self.clock.cancel()
        self.clock = None


class SessionRegistry:
    """In-process home for live sessions.

    Sessions are never persisted; only final results leave the process.
    At most `keep_ended` finished sessions are retained; older ones are
    evicted as new sessions are created.
    """

    def __init__(self, *, keep_ended: int = DEFAULT_KEEP_ENDED) -> None:
        self.keep_ended = keep_ended
        self._by_id: dict[str, SessionHandle] = {}

    def create(self, config: SessionConfig | None = None) -> SessionHandle:
        self.evict_ended()
        session = GameSession(config)
        handle = SessionHandle(session=session)
        session.subscribe(handle.outbox.append)
        self._by_id[session.session_id] = handle
        return handle

    def get(self, session_id: str) -> SessionHandle | None:
        return self._by_id.get(session_id)

    def require(self, session_id: str) -> SessionHandle:
        handle = self.get(session_id)
        if handle is None:
            raise KeyError(session_id)
        return handle

    def remove(self, session_id: str) -> bool:
        handle = self._by_id.pop(session_id, None)
        if handle is None:
            return False
        handle.stop_clock()
        handle.session.close()
        logger.info("session %s removed", session_id)
        return True

    def evict_ended(self) -> list[str]:
        """Drop the oldest finished sessions beyond `keep_ended`. Returns the evicted ids.

        A session whose events have not been flushed yet is never evicted.
        """

        ended = [sid for sid, h in self._by_id.items() if h.session.is_ended and not h.outbox]
        evicted = ended[: max(0, len(ended) - self.keep_ended)]
        for sid in evicted:
            self.remove(sid)
        return evicted

    def __len__(self) -> int:
        return len(self._by_id)


registry = SessionRegistry()
