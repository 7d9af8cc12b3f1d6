from __future__ import annotations

import logging
import math
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from uuid import uuid4

from pydantic import BaseModel

from realm.config import SessionConfig, TerminalRule
from realm.core.combo import ComboTracker
from realm.core.events import EventType, SessionEvent
from realm.core.powerups import PowerUpApplied, PowerUpManager, PowerUpOutcome, PowerUpRejected, RejectReason
from realm.core.scoring import ScoringEngine, SessionOutcome, SessionResult, SessionStats
from realm.core.stability import StabilityController
from realm.core.zones import StabilityZone, classify, zone_color
from realm.fsm import SessionFSM, SessionPhase

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SwipeIntent:
    correct: bool
    magnitude: float = 0.0
    points: int | None = None


@dataclass(frozen=True, slots=True)
class MissIntent:
    enemy: bool


@dataclass(frozen=True, slots=True)
class PowerUpIntent:
    kind: str


Intent = SwipeIntent | MissIntent | PowerUpIntent


@dataclass(frozen=True, slots=True)
class TerminalCheck:
    stability: float
    zone: StabilityZone
    timer_remaining: int
    dt: float


TerminalPredicate = Callable[[TerminalCheck], bool]


class ExtremeStabilityRule:
    """Ends the session once stability has sat at/beyond a bound for long enough."""

    def __init__(self, rule: TerminalRule) -> None:
        self.rule = rule
        self.seconds_at_extreme = 0.0

    def is_extreme(self, stability: float) -> bool:
        if self.rule.low is not None and stability <= self.rule.low:
            return True
        if self.rule.high is not None and stability >= self.rule.high:
            return True
        return False

    def __call__(self, check: TerminalCheck) -> bool:
        if not self.is_extreme(check.stability):
            self.seconds_at_extreme = 0.0
            return False
        self.seconds_at_extreme += check.dt
        return self.seconds_at_extreme >= self.rule.sustained_seconds


class StabilityView(BaseModel):
    value: float
    zone: StabilityZone
    color: str


class ComboView(BaseModel):
    count: int
    title: str | None
    multiplier: float


class PowerUpView(BaseModel):
    name: str
    charges: int
    max_charges: int
    cooldown_remaining: float
    available: bool


class SessionView(BaseModel):
    session_id: str
    phase: SessionPhase
    stability: StabilityView
    combo: ComboView
    power_ups: dict[str, PowerUpView]
    stats: SessionStats
    result: SessionResult | None = None


def _round_half_up(x: float) -> int:
    return math.floor(x + 0.5)


class GameSession:
    """One play-through: owns stability, combo, power-ups and statistics.

    Player intents either apply immediately (`on_swipe`, `on_miss`,
    `on_power_up_requested`) or are queued with `submit` and drained at the
    start of the next `on_tick`. Each tick then decays, reclassifies, updates
    statistics and checks for the end of the session, in that order.

    Subscribers registered with `subscribe` receive every `SessionEvent`.
    """

    def __init__(
        self,
        config: SessionConfig | None = None,
        *,
        session_id: str | None = None,
        terminal_predicate: TerminalPredicate | None = None,
    ) -> None:
        self.config = config if config is not None else SessionConfig()
        self.session_id = session_id or str(uuid4())

        self.fsm = SessionFSM()
        self.stability = StabilityController(value=self.config.initial_stability, decay=self.config.decay)
        self.combo = ComboTracker(self.config.combo)
        self.power_ups = PowerUpManager(self.config.power_ups, self.stability)
        self.scoring = ScoringEngine()
        self.stats = SessionStats(timer_remaining=self.config.duration_seconds)
        self.terminal_predicate: TerminalPredicate = (
            terminal_predicate if terminal_predicate is not None else ExtremeStabilityRule(self.config.terminal)
        )

        self._elapsed = 0.0
        self._zone = self.zone
        self._final_wave_announced = False
        self._queue: deque[Intent] = deque()
        self._listeners: list[Callable[[SessionEvent], None]] = []

        logger.info("session %s created (duration=%ss)", self.session_id, self.config.duration_seconds)

    # ---- derived state -------------------------------------------------

    @property
    def phase(self) -> SessionPhase:
        return self.fsm.phase

    @property
    def is_active(self) -> bool:
        return self.phase == SessionPhase.active

    @property
    def is_ended(self) -> bool:
        return self.phase == SessionPhase.ended

    @property
    def zone(self) -> StabilityZone:
        return classify(self.stability.value, self.config.zones)

    @property
    def result(self) -> SessionResult | None:
        return self.scoring.result

    def view(self) -> SessionView:
        zone = self.zone
        return SessionView(
            session_id=self.session_id,
            phase=self.phase,
            stability=StabilityView(
                value=self.stability.value,
                zone=zone,
                color=zone_color(zone, self.config.zones),
            ),
            combo=ComboView(count=self.combo.count, title=self.combo.title, multiplier=self.combo.multiplier),
            power_ups={
                kind: PowerUpView(
                    name=cfg.name,
                    charges=self.power_ups.charges[kind],
                    max_charges=cfg.max_charges,
                    cooldown_remaining=self.power_ups.cooldown_remaining[kind],
                    available=self.is_active and self.power_ups.is_available(kind),
                )
                for kind, cfg in self.power_ups.configs.items()
            },
            stats=self.stats.model_copy(deep=True),
            result=self.result,
        )

    # ---- notification channel ------------------------------------------

    def subscribe(self, callback: Callable[[SessionEvent], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def _emit(self, type: EventType, **payload: object) -> None:
        event = SessionEvent.now(type=type, session_id=self.session_id, payload=dict(payload))
        for listener in list(self._listeners):
            listener(event)

    # ---- player intents --------------------------------------------------

    def submit(self, intent: Intent) -> None:
        """Queue an intent for the next tick. Dropped unless the session is active."""

        if not self.is_active:
            return
        self._queue.append(intent)

    def on_swipe(self, correct: bool, magnitude: float = 0.0, points: int | None = None) -> SessionView:
        if self.is_active:
            self._apply_swipe(SwipeIntent(correct=correct, magnitude=magnitude, points=points))
        return self.view()

    def on_miss(self, enemy: bool) -> SessionView:
        if self.is_active:
            self._apply_miss(MissIntent(enemy=enemy))
        return self.view()

    def on_power_up_requested(self, kind: str) -> PowerUpOutcome:
        if not self.is_active:
            return PowerUpRejected(kind=kind, reason=RejectReason.session_inactive)
        return self._apply_power_up(PowerUpIntent(kind=kind))

    def _apply(self, intent: Intent) -> None:
        if isinstance(intent, SwipeIntent):
            self._apply_swipe(intent)
        elif isinstance(intent, MissIntent):
            self._apply_miss(intent)
        else:
            self._apply_power_up(intent)

    def _apply_swipe(self, intent: SwipeIntent) -> None:
        if intent.correct:
            hit = self.combo.record_hit()
            base = intent.points if intent.points is not None else self.config.base_swipe_points
            points = _round_half_up(base * hit.multiplier)
            self.stats.battle_points += points
            self.stats.correct_swipes += 1
            self.stats.max_combo = max(self.stats.max_combo, self.combo.best)
            value = self.stability.apply_delta(intent.magnitude)

            self._emit("SWIPE_APPLIED", correct=True, points=points, combo=hit.count, stability=value)
            if hit.milestone is not None:
                self._emit(
                    "COMBO_MILESTONE",
                    count=hit.count,
                    title=hit.milestone.title,
                    multiplier=hit.milestone.multiplier,
                )
        else:
            lost = self.combo.reset()
            self.stats.incorrect_swipes += 1
            value = self.stability.apply_delta(-self.config.wrong_swipe_penalty)

            self._emit("SWIPE_APPLIED", correct=False, points=0, combo=0, stability=value)
            if lost:
                self._emit("COMBO_BROKEN", lost=lost, reason="wrong_swipe")

        self._reclassify()

    def _apply_miss(self, intent: MissIntent) -> None:
        penalties = self.config.miss_penalties
        penalty = penalties.enemy_get_through if intent.enemy else penalties.ally_missed
        lost = self.combo.reset()
        value = self.stability.apply_delta(-penalty)

        self._emit("UNIT_MISSED", enemy=intent.enemy, penalty=penalty, stability=value)
        if lost:
            self._emit("COMBO_BROKEN", lost=lost, reason="unit_missed")
        self._reclassify()

    def _apply_power_up(self, intent: PowerUpIntent) -> PowerUpOutcome:
        outcome = self.power_ups.activate(intent.kind)
        if isinstance(outcome, PowerUpApplied):
            used = self.stats.power_ups_used
            used[outcome.kind] = used.get(outcome.kind, 0) + 1
            self._emit(
                "POWER_UP_APPLIED",
                kind=outcome.kind,
                delta=outcome.delta,
                stability=outcome.stability,
                charges_remaining=outcome.charges_remaining,
            )
            self._reclassify()
        else:
            logger.debug("session %s: power-up %s rejected (%s)", self.session_id, outcome.kind, outcome.reason)
            self._emit("POWER_UP_REJECTED", kind=outcome.kind, reason=outcome.reason.value)
        return outcome

    def _reclassify(self) -> StabilityZone:
        zone = self.zone
        if zone != self._zone:
            logger.debug("session %s: zone %s -> %s", self.session_id, self._zone, zone)
            self._emit("ZONE_CHANGED", previous=self._zone.value, zone=zone.value, stability=self.stability.value)
            self._zone = zone
        return zone

    # ---- simulation tick -------------------------------------------------

    def on_tick(self, dt: float) -> SessionView:
        if not self.is_active or not math.isfinite(dt) or dt <= 0:
            return self.view()

        while self._queue:
            self._apply(self._queue.popleft())

        self.stability.tick(dt)
        zone = self._reclassify()

        self._elapsed += dt
        if zone == StabilityZone.balanced:
            self.stats.time_in_balanced += dt
        elif zone.is_warning:
            self.stats.time_in_warning += dt
        else:
            self.stats.time_in_critical += dt

        # Rounded so accumulated float ticks land on whole seconds.
        elapsed_whole = math.floor(round(self._elapsed, 6))
        self.stats.timer_remaining = max(0, self.config.duration_seconds - elapsed_whole)

        lost = self.combo.advance(dt)
        if lost:
            self._emit("COMBO_BROKEN", lost=lost, reason="timeout")
        self.power_ups.advance(dt)

        final_wave_at = self.config.final_wave_at
        if (
            not self._final_wave_announced
            and 0 < self.stats.timer_remaining <= final_wave_at
        ):
            self._final_wave_announced = True
            self._emit("FINAL_WAVE", timer_remaining=self.stats.timer_remaining)

        if self.stats.timer_remaining == 0:
            self.on_session_end()
        else:
            check = TerminalCheck(
                stability=self.stability.value,
                zone=zone,
                timer_remaining=self.stats.timer_remaining,
                dt=dt,
            )
            if self.terminal_predicate(check):
                self.on_session_end(outcome=SessionOutcome.defeat)

        return self.view()

    # ---- lifecycle ---------------------------------------------------------

    def pause(self) -> SessionView:
        if self.is_active:
            self.fsm.pause()
            self._emit("SESSION_PAUSED")
        return self.view()

    def resume(self) -> SessionView:
        if self.phase == SessionPhase.paused:
            self.fsm.resume()
            self._emit("SESSION_RESUMED")
        return self.view()

    def victory_outcome(self) -> SessionOutcome:
        value = self.stability.value
        in_band = self.config.victory_min <= value <= self.config.victory_max
        if in_band and self.stats.battle_points > 0:
            return SessionOutcome.victory
        return SessionOutcome.defeat

    def on_session_end(self, outcome: SessionOutcome | None = None) -> SessionResult:
        """Finalize once. Later calls return the first result unchanged."""

        existing = self.scoring.result
        if existing is not None:
            return existing

        self._queue.clear()
        self.fsm.finish()
        result = self.scoring.finalize(
            self.stats,
            final_stability=self.stability.value,
            outcome=outcome if outcome is not None else self.victory_outcome(),
        )
        logger.info(
            "session %s ended: score=%s grade=%s outcome=%s",
            self.session_id,
            result.score,
            result.grade,
            result.outcome,
        )
        self._emit(
            "SESSION_ENDED",
            score=result.score,
            grade=result.grade.value,
            outcome=result.outcome.value,
        )
        return result

    def close(self) -> None:
        self._listeners.clear()
        self._queue.clear()
