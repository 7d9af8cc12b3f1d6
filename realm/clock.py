from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from realm.registry import SessionHandle


@dataclass(frozen=True, slots=True)
class ClockConfig:
    # Simulated seconds per tick.
    tick_seconds: float = 1.0
    # Wall-clock seconds between ticks; 0 runs as fast as the event loop allows.
    interval_seconds: float = 1.0


async def run_session_clock(
    *,
    handle: SessionHandle,
    config: ClockConfig = ClockConfig(),
    after_tick: Callable[[SessionHandle], Awaitable[None]] | None = None,
) -> int:
    """Drive `on_tick` until the session ends. Returns the number of ticks applied.

    Ticks take the handle's lock, so they serialize with player intents
    arriving through the API.
    """

    ticks = 0
    while not handle.session.is_ended:
        await asyncio.sleep(config.interval_seconds)
        async with handle.lock:
            if handle.session.is_ended:
                break
            handle.session.on_tick(config.tick_seconds)
            ticks += 1
        if after_tick is not None:
            await after_tick(handle)
    return ticks
