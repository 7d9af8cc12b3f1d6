from __future__ import annotations

import asyncio

from realm.clock import ClockConfig, run_session_clock
from realm.config import SessionConfig
from realm.registry import SessionHandle, SessionRegistry


def test_clock_ticks_until_timer_runs_out() -> None:
    reg = SessionRegistry()
    handle = reg.create(SessionConfig(duration_seconds=5))
    seen: list[int] = []

    async def _after_tick(h: SessionHandle) -> None:
        seen.append(h.session.stats.timer_remaining)

    ticks = asyncio.run(
        run_session_clock(
            handle=handle,
            config=ClockConfig(tick_seconds=1.0, interval_seconds=0),
            after_tick=_after_tick,
        )
    )

    assert ticks == 5
    assert seen == [4, 3, 2, 1, 0]
    assert handle.session.is_ended
    assert [e.type for e in handle.drain()][-1] == "SESSION_ENDED"


def test_clock_serializes_with_intents() -> None:
    reg = SessionRegistry()
    handle = reg.create(SessionConfig(duration_seconds=3))

    async def _main() -> int:
        clock = asyncio.create_task(
            run_session_clock(handle=handle, config=ClockConfig(tick_seconds=1.0, interval_seconds=0))
        )
        async with handle.lock:
            handle.session.on_swipe(True)
        return await clock

    ticks = asyncio.run(_main())
    assert ticks == 3
    result = handle.session.result
    assert result is not None
    assert result.stats.correct_swipes == 1


def test_clock_on_ended_session_does_nothing() -> None:
    reg = SessionRegistry()
    handle = reg.create()
    handle.session.on_session_end()

    assert asyncio.run(run_session_clock(handle=handle, config=ClockConfig(interval_seconds=0))) == 0
