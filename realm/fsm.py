from __future__ import annotations

from enum import StrEnum

from statemachine import State, StateMachine


class SessionPhase(StrEnum):
    active = "active"
    paused = "paused"
    ended = "ended"


class SessionFSM(StateMachine):
    """Session lifecycle: active <-> paused -> ended.

    `ended` is final; the session rejects every mutation once it gets there.
    """

    active = State(SessionPhase.active.value, value=SessionPhase.active.value, initial=True)
    paused = State(SessionPhase.paused.value, value=SessionPhase.paused.value)
    ended = State(SessionPhase.ended.value, value=SessionPhase.ended.value, final=True)

    pause = active.to(paused)
    resume = paused.to(active)
    finish = active.to(ended) | paused.to(ended)

    @property
    def phase(self) -> SessionPhase:
        return SessionPhase(str(self.current_state.value))
