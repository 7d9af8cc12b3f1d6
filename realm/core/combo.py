from __future__ import annotations

from dataclasses import dataclass

from statemachine import State, StateMachine

from realm.config import ComboConfig, ComboTier


def tier_for(count: int, tiers: list[ComboTier]) -> ComboTier | None:
    """Highest tier whose threshold `count` has reached."""

    reached: ComboTier | None = None
    for tier in tiers:
        if count >= tier.count:
            reached = tier
    return reached


def multiplier_for(count: int, tiers: list[ComboTier]) -> float:
    tier = tier_for(count, tiers)
    return tier.multiplier if tier is not None else 1.0


class ComboFSM(StateMachine):
    """idle (count == 0) <-> streaking (count >= 1)."""

    idle = State("idle", value="idle", initial=True)
    streaking = State("streaking", value="streaking")

    hit = idle.to(streaking) | streaking.to.itself()
    break_streak = streaking.to(idle) | idle.to.itself()


@dataclass(frozen=True, slots=True)
class ComboHit:
    count: int
    multiplier: float
    title: str | None
    # Set when this hit landed exactly on a tier threshold.
    milestone: ComboTier | None


class ComboTracker:
    def __init__(self, config: ComboConfig | None = None) -> None:
        self.config = config if config is not None else ComboConfig()
        self.fsm = ComboFSM()
        self.count = 0
        self.best = 0
        self._idle_seconds = 0.0

    @property
    def is_streaking(self) -> bool:
        return self.fsm.current_state == self.fsm.streaking

    @property
    def multiplier(self) -> float:
        return multiplier_for(self.count, self.config.tiers)

    @property
    def title(self) -> str | None:
        tier = tier_for(self.count, self.config.tiers)
        return tier.title if tier is not None else None

    def record_hit(self) -> ComboHit:
        self.fsm.hit()
        self.count += 1
        self.best = max(self.best, self.count)
        self._idle_seconds = 0.0

        milestone = next((t for t in self.config.tiers if t.count == self.count), None)
        return ComboHit(count=self.count, multiplier=self.multiplier, title=self.title, milestone=milestone)

    def reset(self) -> int:
        """Drop the streak; returns the count that was lost."""

        lost = self.count
        self.fsm.break_streak()
        self.count = 0
        self._idle_seconds = 0.0
        return lost

    def advance(self, dt: float) -> int:
        """Age the streak by `dt` seconds; returns the lost count if the window elapsed."""

        if not self.is_streaking:
            return 0
        self._idle_seconds += dt
        if self._idle_seconds >= self.config.window_seconds:
            return self.reset()
        return 0
