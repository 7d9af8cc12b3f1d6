from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

import redis
from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status

from realm.api.deps import get_redis, get_redis_factory, get_registry, get_wallet
from realm.api.models import (
    ClockStartRequest,
    MissRequest,
    PowerUpResponse,
    ResultListResponse,
    SessionCreateRequest,
    SwipeRequest,
    TickRequest,
)
from realm.clock import ClockConfig, run_session_clock
from realm.config import load_session_config
from realm.core.powerups import PowerUpApplied
from realm.core.scoring import SessionResult
from realm.presets import config_for_tier
from realm.registry import SessionHandle, SessionRegistry
from realm.result_store import get_result, list_results, save_result
from realm.session import SessionView
from realm.streams import publish_events
from realm.wallet import WalletConnector
from realm.websocket_hub import hub

router = APIRouter()
logger = logging.getLogger(__name__)


def _require_handle(reg: SessionRegistry, session_id: str) -> SessionHandle:
    try:
        return reg.require(session_id)
    except KeyError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found") from None


def _flush(*, handle: SessionHandle, r: redis.Redis, wallet: WalletConnector) -> list[str]:
    """Publish pending events; hand a freshly finalized result to storage and the wallet."""

    events = handle.drain()
    if events:
        publish_events(r=r, events=events)

    session = handle.session
    result = session.result
    if result is not None and any(e.type == "SESSION_ENDED" for e in events):
        if save_result(r=r, session_id=session.session_id, result=result):
            wallet.submit_result(session_id=session.session_id, result=result)
    return [e.type for e in events]


async def _run_clock(
    handle: SessionHandle,
    *,
    config: ClockConfig,
    redis_factory: Callable[[], redis.Redis],
    wallet: WalletConnector,
) -> int:
    r = redis_factory()

    async def _after_tick(h: SessionHandle) -> None:
        async with h.lock:
            event_types = _flush(handle=h, r=r, wallet=wallet)
            view = h.session.view()
        await hub.publish_update(h.session.session_id, event_types=event_types, view=view)

    try:
        return await run_session_clock(handle=handle, config=config, after_tick=_after_tick)
    finally:
        r.close()


def _log_clock_exit(session_id: str, task: asyncio.Task[int]) -> None:
    if task.cancelled():
        logger.debug("clock for session %s stopped", session_id)
        return
    exc = task.exception()
    if exc is not None:
        logger.error("clock for session %s failed", session_id, exc_info=exc)
    else:
        logger.info("clock for session %s finished after %d ticks", session_id, task.result())


@router.websocket("/ws/sessions/{session_id}")
async def session_updates_ws(
    websocket: WebSocket,
    session_id: str,
    reg: SessionRegistry = Depends(get_registry),
) -> None:
    handle = reg.get(session_id)
    if handle is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await hub.watch(session_id, websocket, snapshot=handle.session.view())
    try:
        # Inbound messages are ignored; the socket only carries updates out.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await hub.unwatch(session_id, websocket)


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/sessions", response_model=SessionView, status_code=status.HTTP_201_CREATED)
async def create_session_route(
    payload: SessionCreateRequest,
    reg: SessionRegistry = Depends(get_registry),
) -> SessionView:
    try:
        config = load_session_config()
        if payload.tier is not None:
            config = config_for_tier(payload.tier, base=config)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    handle = reg.create(config)
    return handle.session.view()


@router.get("/sessions/{session_id}", response_model=SessionView)
async def get_session_route(session_id: str, reg: SessionRegistry = Depends(get_registry)) -> SessionView:
    return _require_handle(reg, session_id).session.view()


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session_route(session_id: str, reg: SessionRegistry = Depends(get_registry)) -> None:
    if not reg.remove(session_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    await hub.close_session(session_id)


@router.post("/sessions/{session_id}/swipe", response_model=SessionView)
async def swipe_route(
    session_id: str,
    payload: SwipeRequest,
    reg: SessionRegistry = Depends(get_registry),
    r: redis.Redis = Depends(get_redis),
    wallet: WalletConnector = Depends(get_wallet),
) -> SessionView:
    handle = _require_handle(reg, session_id)
    async with handle.lock:
        view = handle.session.on_swipe(payload.correct, payload.magnitude, payload.points)
        event_types = _flush(handle=handle, r=r, wallet=wallet)

    await hub.publish_update(session_id, event_types=event_types, view=view)
    return view


@router.post("/sessions/{session_id}/miss", response_model=SessionView)
async def miss_route(
    session_id: str,
    payload: MissRequest,
    reg: SessionRegistry = Depends(get_registry),
    r: redis.Redis = Depends(get_redis),
    wallet: WalletConnector = Depends(get_wallet),
) -> SessionView:
    handle = _require_handle(reg, session_id)
    async with handle.lock:
        view = handle.session.on_miss(payload.enemy)
        event_types = _flush(handle=handle, r=r, wallet=wallet)

    await hub.publish_update(session_id, event_types=event_types, view=view)
    return view


@router.post("/sessions/{session_id}/power-ups/{kind}", response_model=PowerUpResponse)
async def power_up_route(
    session_id: str,
    kind: str,
    reg: SessionRegistry = Depends(get_registry),
    r: redis.Redis = Depends(get_redis),
    wallet: WalletConnector = Depends(get_wallet),
) -> PowerUpResponse:
    handle = _require_handle(reg, session_id)
    async with handle.lock:
        outcome = handle.session.on_power_up_requested(kind)
        view = handle.session.view()
        event_types = _flush(handle=handle, r=r, wallet=wallet)

    await hub.publish_update(session_id, event_types=event_types, view=view)

    # A rejection is a normal outcome (the UI greys the button out), not an HTTP error.
    if isinstance(outcome, PowerUpApplied):
        return PowerUpResponse(applied=True, delta=outcome.delta, session=view)
    return PowerUpResponse(applied=False, reason=outcome.reason, session=view)


@router.post("/sessions/{session_id}/tick", response_model=SessionView)
async def tick_route(
    session_id: str,
    payload: TickRequest,
    reg: SessionRegistry = Depends(get_registry),
    r: redis.Redis = Depends(get_redis),
    wallet: WalletConnector = Depends(get_wallet),
) -> SessionView:
    handle = _require_handle(reg, session_id)
    async with handle.lock:
        view = handle.session.on_tick(payload.dt)
        event_types = _flush(handle=handle, r=r, wallet=wallet)

    await hub.publish_update(session_id, event_types=event_types, view=view)
    return view


@router.post("/sessions/{session_id}/clock", response_model=SessionView, status_code=status.HTTP_202_ACCEPTED)
async def start_clock_route(
    session_id: str,
    payload: ClockStartRequest,
    reg: SessionRegistry = Depends(get_registry),
    redis_factory: Callable[[], redis.Redis] = Depends(get_redis_factory),
    wallet: WalletConnector = Depends(get_wallet),
) -> SessionView:
    """Tick the session server-side until it ends; updates reach storage, the wallet and watchers."""

    handle = _require_handle(reg, session_id)
    if handle.session.is_ended:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Session has ended")
    if handle.clock_running:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Clock already running")

    config = ClockConfig(tick_seconds=payload.tick_seconds, interval_seconds=payload.interval_seconds)
    task = asyncio.create_task(_run_clock(handle, config=config, redis_factory=redis_factory, wallet=wallet))
    task.add_done_callback(lambda t: _log_clock_exit(session_id, t))
    handle.clock = task
    return handle.session.view()


@router.post("/sessions/{session_id}/pause", response_model=SessionView)
async def pause_route(
    session_id: str,
    reg: SessionRegistry = Depends(get_registry),
    r: redis.Redis = Depends(get_redis),
    wallet: WalletConnector = Depends(get_wallet),
) -> SessionView:
    handle = _require_handle(reg, session_id)
    async with handle.lock:
        view = handle.session.pause()
        event_types = _flush(handle=handle, r=r, wallet=wallet)

    await hub.publish_update(session_id, event_types=event_types, view=view)
    return view


@router.post("/sessions/{session_id}/resume", response_model=SessionView)
async def resume_route(
    session_id: str,
    reg: SessionRegistry = Depends(get_registry),
    r: redis.Redis = Depends(get_redis),
    wallet: WalletConnector = Depends(get_wallet),
) -> SessionView:
    handle = _require_handle(reg, session_id)
    async with handle.lock:
        view = handle.session.resume()
        event_types = _flush(handle=handle, r=r, wallet=wallet)

    await hub.publish_update(session_id, event_types=event_types, view=view)
    return view


@router.post("/sessions/{session_id}/end", response_model=SessionResult)
async def end_route(
    session_id: str,
    reg: SessionRegistry = Depends(get_registry),
    r: redis.Redis = Depends(get_redis),
    wallet: WalletConnector = Depends(get_wallet),
) -> SessionResult:
    handle = _require_handle(reg, session_id)
    async with handle.lock:
        result = handle.session.on_session_end()
        view = handle.session.view()
        event_types = _flush(handle=handle, r=r, wallet=wallet)

    await hub.publish_update(session_id, event_types=event_types, view=view)
    return result


@router.get("/results", response_model=ResultListResponse)
async def list_results_route(r: redis.Redis = Depends(get_redis)) -> ResultListResponse:
    return ResultListResponse(results=list_results(r=r))


@router.get("/results/{session_id}", response_model=SessionResult)
async def get_result_route(session_id: str, r: redis.Redis = Depends(get_redis)) -> SessionResult:
    result = get_result(r=r, session_id=session_id)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Result not found")
    return result
