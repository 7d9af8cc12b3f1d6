from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum

from realm.config import PowerUpConfig
from realm.core.stability import StabilityController


class RejectReason(StrEnum):
    no_charges_remaining = "no_charges_remaining"
    cooling_down = "cooling_down"
    unknown_power_up = "unknown_power_up"
    session_inactive = "session_inactive"


@dataclass(frozen=True, slots=True)
class PowerUpApplied:
    kind: str
    delta: float
    stability: float
    charges_remaining: int


@dataclass(frozen=True, slots=True)
class PowerUpRejected:
    kind: str
    reason: RejectReason


PowerUpOutcome = PowerUpApplied | PowerUpRejected


class ActivationGuard(ABC):
    """A single availability check run before a power-up fires."""

    @abstractmethod
    def check(self, *, kind: str, manager: "PowerUpManager") -> RejectReason | None:
        raise NotImplementedError


class KnownKindGuard(ActivationGuard):
    def check(self, *, kind: str, manager: "PowerUpManager") -> RejectReason | None:
        if kind not in manager.configs:
            return RejectReason.unknown_power_up
        return None


class ChargesGuard(ActivationGuard):
    def check(self, *, kind: str, manager: "PowerUpManager") -> RejectReason | None:
        if manager.charges[kind] <= 0:
            return RejectReason.no_charges_remaining
        return None


class CooldownGuard(ActivationGuard):
    def check(self, *, kind: str, manager: "PowerUpManager") -> RejectReason | None:
        if manager.cooldown_remaining[kind] > 0:
            return RejectReason.cooling_down
        return None


# Order matters: later guards index by kind.
DEFAULT_GUARDS: tuple[ActivationGuard, ...] = (KnownKindGuard(), ChargesGuard(), CooldownGuard())


class PowerUpManager:
    """Per-kind charge counts and cooldowns.

    Charges are fixed per session; nothing here replenishes them.
    """

    def __init__(
        self,
        configs: dict[str, PowerUpConfig],
        stability: StabilityController,
        guards: tuple[ActivationGuard, ...] = DEFAULT_GUARDS,
    ) -> None:
        self.configs = dict(configs)
        self.stability = stability
        self.guards = guards
        self.charges: dict[str, int] = {k: c.max_charges for k, c in self.configs.items()}
        self.cooldown_remaining: dict[str, float] = {k: 0.0 for k in self.configs}

    def rejection_for(self, kind: str) -> RejectReason | None:
        for guard in self.guards:
            reason = guard.check(kind=kind, manager=self)
            if reason is not None:
                return reason
        return None

    def is_available(self, kind: str) -> bool:
        return self.rejection_for(kind) is None

    def activate(self, kind: str) -> PowerUpOutcome:
        reason = self.rejection_for(kind)
        if reason is not None:
            return PowerUpRejected(kind=kind, reason=reason)

        cfg = self.configs[kind]
        self.charges[kind] -= 1
        self.cooldown_remaining[kind] = cfg.cooldown_seconds
        value = self.stability.apply_delta(cfg.stability_delta)
        return PowerUpApplied(
            kind=kind,
            delta=cfg.stability_delta,
            stability=value,
            charges_remaining=self.charges[kind],
        )

    def advance(self, dt: float) -> None:
        for kind, remaining in self.cooldown_remaining.items():
            if remaining > 0:
                self.cooldown_remaining[kind] = max(0.0, remaining - dt)
