from __future__ import annotations

from dataclasses import dataclass, field

from realm.config import DecayConfig

STABILITY_MIN = 0.0
STABILITY_MAX = 100.0


def clamp_stability(value: float) -> float:
    return max(STABILITY_MIN, min(STABILITY_MAX, value))


@dataclass(slots=True)
class StabilityController:
    """Owns the realm stability value; every write is clamped to [0, 100].

    Callers re-classify the zone after each mutation instead of caching it.
    """

    value: float = 50.0
    decay: DecayConfig = field(default_factory=DecayConfig)

    def __post_init__(self) -> None:
        self.value = clamp_stability(self.value)

    def apply_delta(self, delta: float) -> float:
        # Overshoot saturates silently.
        self.value = clamp_stability(self.value + delta)
        return self.value

    def tick(self, dt: float) -> float:
        """Drift toward the configured baseline without crossing it."""

        rate = self.decay.rate_per_second
        if rate <= 0 or dt <= 0:
            return self.value

        gap = self.decay.baseline - self.value
        step = min(abs(gap), rate * dt)
        if gap < 0:
            step = -step
        self.value = clamp_stability(self.value + step)
        return self.value
