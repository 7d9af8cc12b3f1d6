from __future__ import annotations

import pytest
from pydantic import ValidationError

from realm.core.scoring import (
    Grade,
    ScoringEngine,
    SessionOutcome,
    SessionStats,
    calculate_final_score,
    grade_for,
    swipe_accuracy,
)


def test_strong_session_grades_s() -> None:
    score, grade = calculate_final_score(
        battle_points=300,
        final_stability=50,
        time_in_balanced=30,
        correct_swipes=9,
        incorrect_swipes=1,
    )
    assert score == 571
    assert grade == Grade.S


def test_unbalanced_inaccurate_session_grades_d() -> None:
    score, grade = calculate_final_score(
        battle_points=100,
        final_stability=80,
        time_in_balanced=0,
        correct_swipes=5,
        incorrect_swipes=5,
    )
    assert score == 92
    assert grade == Grade.D


def test_no_swipes_means_zero_accuracy() -> None:
    assert swipe_accuracy(0, 0) == 0.0
    score, grade = calculate_final_score(
        battle_points=1000,
        final_stability=50,
        time_in_balanced=60,
        correct_swipes=0,
        incorrect_swipes=0,
    )
    # floor(1000 * 1.2 * 1.5 * 1.0)
    assert score == 1800
    assert grade == Grade.D


@pytest.mark.parametrize(
    ("score", "acc", "grade"),
    [
        (500, 0.90, Grade.S),
        (499, 0.99, Grade.A),
        (900, 0.85, Grade.A),
        (900, 0.75, Grade.B),
        (900, 0.65, Grade.C),
        (900, 0.59, Grade.D),
        (300, 0.70, Grade.B),
        (199, 1.00, Grade.D),
    ],
)
def test_accuracy_gates_grade_regardless_of_score(score: int, acc: float, grade: Grade) -> None:
    assert grade_for(score, acc) == grade


def test_stability_bonus_band_is_inclusive() -> None:
    kwargs = dict(battle_points=100, time_in_balanced=0, correct_swipes=1, incorrect_swipes=0)
    assert calculate_final_score(final_stability=40, **kwargs)[0] == 156
    assert calculate_final_score(final_stability=60, **kwargs)[0] == 156
    assert calculate_final_score(final_stability=60.5, **kwargs)[0] == 104


def test_finalize_happens_once() -> None:
    engine = ScoringEngine()
    stats = SessionStats(battle_points=300, time_in_balanced=30, correct_swipes=9, incorrect_swipes=1)

    first = engine.finalize(stats, final_stability=50, outcome=SessionOutcome.victory)
    assert first.score == 571
    assert first.grade == Grade.S
    assert first.accuracy == pytest.approx(0.9)

    stats.battle_points = 10_000
    second = engine.finalize(stats, final_stability=90, outcome=SessionOutcome.defeat)
    assert second is first
    assert engine.result is first
    assert first.stats.battle_points == 300


def test_final_result_stats_are_frozen() -> None:
    engine = ScoringEngine()
    stats = SessionStats(battle_points=300, correct_swipes=9, incorrect_swipes=1, power_ups_used={"exercise": 1})
    result = engine.finalize(stats, final_stability=50, outcome=SessionOutcome.victory)

    with pytest.raises(ValidationError):
        result.stats.battle_points = 99_999
    assert result.stats.battle_points == 300

    stats.power_ups_used["exercise"] = 3
    assert result.stats.power_ups_used == {"exercise": 1}
