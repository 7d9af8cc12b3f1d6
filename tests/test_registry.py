from __future__ import annotations

import pytest

from realm.config import SessionConfig
from realm.registry import SessionRegistry


def test_registry_tracks_live_sessions() -> None:
    reg = SessionRegistry()
    handle = reg.create(SessionConfig(duration_seconds=30))
    sid = handle.session.session_id

    assert len(reg) == 1
    assert reg.get(sid) is handle
    assert reg.require(sid) is handle
    assert handle.session.stats.timer_remaining == 30

    handle.session.on_swipe(True)
    assert [e.type for e in handle.drain()] == ["SWIPE_APPLIED"]
    assert handle.drain() == []

    assert reg.remove(sid) is True
    assert reg.remove(sid) is False
    assert reg.get(sid) is None
    assert len(reg) == 0
    with pytest.raises(KeyError):
        reg.require(sid)


def test_removed_session_stops_feeding_outbox() -> None:
    reg = SessionRegistry()
    handle = reg.create()
    reg.remove(handle.session.session_id)

    handle.session.on_swipe(True)
    assert handle.outbox == []


def test_oldest_finished_sessions_are_evicted() -> None:
    reg = SessionRegistry(keep_ended=1)
    first = reg.create()
    first.session.on_session_end()
    first.drain()
    second = reg.create()
    second.session.on_session_end()
    second.drain()
    live = reg.create()

    assert reg.get(first.session.session_id) is None
    assert reg.get(second.session.session_id) is second
    assert reg.get(live.session.session_id) is live
    assert len(reg) == 2


def test_unflushed_finished_sessions_are_kept() -> None:
    reg = SessionRegistry(keep_ended=0)
    handle = reg.create()
    handle.session.on_session_end()

    assert reg.evict_ended() == []
    handle.drain()
    assert reg.evict_ended() == [handle.session.session_id]
    assert len(reg) == 0
