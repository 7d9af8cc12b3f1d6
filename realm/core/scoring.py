from __future__ import annotations

import math
from enum import StrEnum

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Grade(StrEnum):
    S = "S"
    A = "A"
    B = "B"
    C = "C"
    D = "D"


class SessionOutcome(StrEnum):
    victory = "victory"
    defeat = "defeat"


# Checked top-down; both the score and the accuracy floor must hold.
GRADE_THRESHOLDS: tuple[tuple[Grade, int, float], ...] = (
    (Grade.S, 500, 0.90),
    (Grade.A, 400, 0.80),
    (Grade.B, 300, 0.70),
    (Grade.C, 200, 0.60),
)


class SessionStats(BaseModel):
    battle_points: int = Field(0, ge=0)
    time_in_balanced: float = Field(0.0, ge=0)
    time_in_warning: float = Field(0.0, ge=0)
    time_in_critical: float = Field(0.0, ge=0)
    correct_swipes: int = Field(0, ge=0)
    incorrect_swipes: int = Field(0, ge=0)
    timer_remaining: int = Field(0, ge=0)
    max_combo: int = Field(0, ge=0)
    power_ups_used: dict[str, int] = Field(default_factory=dict)

    @property
    def accuracy(self) -> float:
        return swipe_accuracy(self.correct_swipes, self.incorrect_swipes)


class FinalStats(SessionStats):
    """Statistics as they stood when the session was finalized."""

    model_config = ConfigDict(frozen=True)


class SessionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int
    grade: Grade
    accuracy: float
    outcome: SessionOutcome
    final_stability: float
    stats: FinalStats

    @field_validator("stats", mode="before")
    @classmethod
    def _snapshot_stats(cls, v: Any) -> Any:
        if isinstance(v, SessionStats) and not isinstance(v, FinalStats):
            return v.model_dump()
        return v


def swipe_accuracy(correct_swipes: int, incorrect_swipes: int) -> float:
    total = correct_swipes + incorrect_swipes
    if total <= 0:
        return 0.0
    return correct_swipes / total


def grade_for(score: int, acc: float) -> Grade:
    for grade, min_score, min_accuracy in GRADE_THRESHOLDS:
        if score >= min_score and acc >= min_accuracy:
            return grade
    return Grade.D


def calculate_final_score(
    *,
    battle_points: int,
    final_stability: float,
    time_in_balanced: float,
    correct_swipes: int,
    incorrect_swipes: int,
) -> tuple[int, Grade]:
    acc = swipe_accuracy(correct_swipes, incorrect_swipes)
    stability_bonus = 1.2 if 40 <= final_stability <= 60 else 0.8
    time_bonus = 1 + (time_in_balanced / 60) * 0.5
    accuracy_bonus = 1 + acc * 0.3

    score = math.floor(battle_points * stability_bonus * time_bonus * accuracy_bonus)
    return score, grade_for(score, acc)


class ScoringEngine:
    """Produces the session result exactly once; later calls return the same result."""

    def __init__(self) -> None:
        self._result: SessionResult | None = None

    @property
    def result(self) -> SessionResult | None:
        return self._result

    def finalize(self, stats: SessionStats, *, final_stability: float, outcome: SessionOutcome) -> SessionResult:
        if self._result is not None:
            return self._result

        score, grade = calculate_final_score(
            battle_points=stats.battle_points,
            final_stability=final_stability,
            time_in_balanced=stats.time_in_balanced,
            correct_swipes=stats.correct_swipes,
            incorrect_swipes=stats.incorrect_swipes,
        )
        self._result = SessionResult(
            score=score,
            grade=grade,
            accuracy=stats.accuracy,
            outcome=outcome,
            final_stability=final_stability,
            stats=stats,
        )
        return self._result
