from __future__ import annotations

from pydantic import BaseModel, Field

from realm.core.powerups import RejectReason
from realm.core.scoring import SessionResult
from realm.presets import DifficultyTier
from realm.session import SessionView


class SessionCreateRequest(BaseModel):
    # Omit for the default (or $REALM_CONFIG_PATH) configuration.
    tier: DifficultyTier | None = None


class SwipeRequest(BaseModel):
    correct: bool
    magnitude: float = Field(0.0, ge=-100, le=100)
    points: int | None = Field(None, ge=0, le=1000)


class MissRequest(BaseModel):
    enemy: bool


class TickRequest(BaseModel):
    dt: float = Field(1.0, gt=0, le=60)


class PowerUpResponse(BaseModel):
    applied: bool
    reason: RejectReason | None = None
    delta: float | None = None
    session: SessionView


class ResultListResponse(BaseModel):
    results: dict[str, SessionResult]


class ClockStartRequest(BaseModel):
    # Simulated seconds per tick, and wall-clock seconds between ticks.
    tick_seconds: float = Field(1.0, gt=0, le=60)
    interval_seconds: float = Field(1.0, ge=0, le=10)
