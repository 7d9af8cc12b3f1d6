from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal

EventType = Literal[
    "SWIPE_APPLIED",
    "UNIT_MISSED",
    "ZONE_CHANGED",
    "COMBO_MILESTONE",
    "COMBO_BROKEN",
    "POWER_UP_APPLIED",
    "POWER_UP_REJECTED",
    "FINAL_WAVE",
    "SESSION_PAUSED",
    "SESSION_RESUMED",
    "SESSION_ENDED",
]


@dataclass(frozen=True, slots=True)
class SessionEvent:
    type: EventType
    session_id: str
    payload: dict[str, Any]
    ts: datetime

    @staticmethod
    def now(*, type: EventType, session_id: str, payload: dict[str, Any]) -> "SessionEvent":
        return SessionEvent(type=type, session_id=session_id, payload=payload, ts=datetime.now(timezone.utc))

    def as_fields(self) -> dict[str, str]:
        """Flatten into string fields for a Redis Stream entry."""

        fields = {"type": self.type, "session_id": self.session_id, "ts": self.ts.isoformat()}
        fields.update({k: "" if v is None else str(v) for k, v in self.payload.items()})
        return fields
