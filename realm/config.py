from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field, model_validator


class ConfigError(ValueError):
    pass


class ZoneBand(BaseModel):
    min: float = Field(..., ge=0, le=100)
    max: float = Field(..., ge=0, le=100)
    color: str = "#ffffff"


class ZoneThresholds(BaseModel):
    """Static stability bands.

    Only `balanced`, `critical_low.max` and `critical_high.min` take part in
    classification; the warning bands exist for display (HUD color legend).
    """

    balanced: ZoneBand = ZoneBand(min=40, max=60, color="#10b981")
    warning_low: ZoneBand = ZoneBand(min=25, max=39, color="#f59e0b")
    warning_high: ZoneBand = ZoneBand(min=61, max=75, color="#f59e0b")
    critical_low: ZoneBand = ZoneBand(min=0, max=24, color="#06b6d4")
    critical_high: ZoneBand = ZoneBand(min=76, max=100, color="#ef4444")

    @model_validator(mode="after")
    def _check_partition(self) -> "ZoneThresholds":
        if self.balanced.min > self.balanced.max:
            raise ConfigError("balanced band min must not exceed max")
        if not self.critical_low.max < self.balanced.min:
            raise ConfigError("critical_low.max must be below balanced.min")
        if not self.balanced.max < self.critical_high.min:
            raise ConfigError("critical_high.min must be above balanced.max")
        return self


class ComboTier(BaseModel):
    count: int = Field(..., ge=1)
    title: str
    multiplier: float = Field(..., ge=1)
    color: str = "#fbbf24"


def _default_combo_tiers() -> list[ComboTier]:
    return [
        ComboTier(count=3, title="DEFENDER!", multiplier=1.5, color="#60a5fa"),
        ComboTier(count=5, title="GUARDIAN!", multiplier=2, color="#a78bfa"),
        ComboTier(count=8, title="EXECUTIONER!", multiplier=2.5, color="#f59e0b"),
        ComboTier(count=12, title="REALM PROTECTOR!", multiplier=3.5, color="#fbbf24"),
        ComboTier(count=18, title="LEGENDARY!", multiplier=5, color="#f97316"),
        ComboTier(count=25, title="GLUCOSE MASTER!", multiplier=7, color="#ec4899"),
    ]


class ComboConfig(BaseModel):
    # Seconds of simulated time without a correct swipe before the streak drops.
    window_seconds: float = Field(2.0, gt=0)
    tiers: list[ComboTier] = Field(default_factory=_default_combo_tiers)

    @model_validator(mode="after")
    def _check_tiers(self) -> "ComboConfig":
        for prev, cur in zip(self.tiers, self.tiers[1:]):
            if cur.count <= prev.count:
                raise ConfigError("combo tiers must be strictly increasing in count")
            if cur.multiplier < prev.multiplier:
                raise ConfigError("combo tier multipliers must be non-decreasing")
        return self


class PowerUpConfig(BaseModel):
    name: str
    max_charges: int = Field(3, ge=0, le=3)
    stability_delta: float
    cooldown_seconds: float = Field(0.0, ge=0)


def _default_power_ups() -> dict[str, PowerUpConfig]:
    return {
        "exercise": PowerUpConfig(name="Call to Exercise", stability_delta=-50),
        "rations": PowerUpConfig(name="Emergency Rations", stability_delta=25),
    }


class DecayConfig(BaseModel):
    # Passive drift toward `baseline`; 0 disables it.
    rate_per_second: float = Field(0.0, ge=0)
    baseline: float = Field(50.0, ge=0, le=100)


class MissPenalties(BaseModel):
    enemy_get_through: float = Field(8, ge=0)
    ally_missed: float = Field(3, ge=0)


class TerminalRule(BaseModel):
    """Early termination: stability at or beyond `low`/`high` for `sustained_seconds`.

    Leave both bounds unset to end sessions on timer exhaustion only.
    """

    low: float | None = Field(5, ge=0, le=100)
    high: float | None = Field(95, ge=0, le=100)
    sustained_seconds: float = Field(0.0, ge=0)

    @model_validator(mode="after")
    def _check_bounds(self) -> "TerminalRule":
        if self.low is not None and self.high is not None and self.low >= self.high:
            raise ConfigError("terminal low bound must be below the high bound")
        return self


class SessionConfig(BaseModel):
    duration_seconds: int = Field(60, ge=1)
    initial_stability: float = Field(50.0, ge=0, le=100)
    base_swipe_points: int = Field(10, ge=0)
    wrong_swipe_penalty: float = Field(8, ge=0)
    final_wave_at: int = Field(10, ge=0)
    victory_min: float = Field(30, ge=0, le=100)
    victory_max: float = Field(70, ge=0, le=100)

    zones: ZoneThresholds = Field(default_factory=ZoneThresholds)
    combo: ComboConfig = Field(default_factory=ComboConfig)
    power_ups: dict[str, PowerUpConfig] = Field(default_factory=_default_power_ups)
    decay: DecayConfig = Field(default_factory=DecayConfig)
    miss_penalties: MissPenalties = Field(default_factory=MissPenalties)
    terminal: TerminalRule = Field(default_factory=TerminalRule)

    @model_validator(mode="after")
    def _check_victory_band(self) -> "SessionConfig":
        if self.victory_min > self.victory_max:
            raise ConfigError("victory_min must not exceed victory_max")
        return self


def get_config_path() -> str | None:
    return os.environ.get("REALM_CONFIG_PATH") or None


def load_session_config(path: str | Path | None = None) -> SessionConfig:
    """Load a `SessionConfig` from JSON, falling back to the defaults.

    `path` defaults to `$REALM_CONFIG_PATH`.
    """

    path = path if path is not None else get_config_path()
    if path is None:
        return SessionConfig()
    p = Path(path)
    try:
        raw = p.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigError(f"Config not found: {p}") from e
    return SessionConfig.model_validate_json(raw)
