from __future__ import annotations

from collections.abc import Sequence
from typing import cast

import redis

from realm.core.events import SessionEvent


def events_stream_key(session_id: str) -> str:
    return f"session:{session_id}:events"


def publish_events(*, r: redis.Redis, events: Sequence[SessionEvent]) -> list[str]:
    """Append session events to their session's Redis Stream, in order."""

    ids: list[str] = []
    for event in events:
        stream_id = r.xadd(events_stream_key(event.session_id), event.as_fields())
        ids.append(cast(str, stream_id))
    return ids
