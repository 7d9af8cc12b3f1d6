from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from realm.config import ComboConfig, ConfigError, SessionConfig, ZoneThresholds, load_session_config
from realm.presets import DifficultyTier, config_for_tier


def test_defaults_are_valid() -> None:
    cfg = SessionConfig()
    assert cfg.duration_seconds == 60
    assert cfg.initial_stability == 50
    assert cfg.combo.window_seconds == 2.0
    assert set(cfg.power_ups) == {"exercise", "rations"}
    assert cfg.power_ups["exercise"].stability_delta == -50
    assert cfg.power_ups["rations"].stability_delta == 25
    assert cfg.power_ups["rations"].max_charges == 3


def test_overlapping_zones_are_rejected() -> None:
    with pytest.raises(ValidationError) as e:
        ZoneThresholds.model_validate(
            {
                "balanced": {"min": 40, "max": 80},
                "critical_high": {"min": 76, "max": 100},
            }
        )
    assert "critical_high.min" in str(e.value)


def test_critical_low_must_sit_below_balanced() -> None:
    with pytest.raises(ValidationError):
        ZoneThresholds.model_validate({"critical_low": {"min": 0, "max": 45}})


def test_combo_tiers_must_increase() -> None:
    with pytest.raises(ValidationError) as e:
        ComboConfig.model_validate(
            {
                "tiers": [
                    {"count": 5, "title": "a", "multiplier": 2},
                    {"count": 3, "title": "b", "multiplier": 3},
                ]
            }
        )
    assert "strictly increasing" in str(e.value)


def test_more_than_three_charges_is_rejected() -> None:
    with pytest.raises(ValidationError):
        SessionConfig.model_validate({"power_ups": {"exercise": {"name": "x", "max_charges": 4, "stability_delta": -1}}})


def test_config_error_is_a_value_error() -> None:
    assert issubclass(ConfigError, ValueError)


def test_load_session_config_from_file(tmp_path: Path) -> None:
    path = tmp_path / "realm.json"
    path.write_text(json.dumps({"duration_seconds": 45, "decay": {"rate_per_second": 0.3}}), encoding="utf-8")

    cfg = load_session_config(path)
    assert cfg.duration_seconds == 45
    assert cfg.decay.rate_per_second == 0.3
    assert cfg.zones.balanced.min == 40


def test_load_session_config_from_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "realm.json"
    path.write_text(json.dumps({"initial_stability": 42}), encoding="utf-8")
    monkeypatch.setenv("REALM_CONFIG_PATH", str(path))

    assert load_session_config().initial_stability == 42


def test_missing_config_file_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigError) as e:
        load_session_config(tmp_path / "nope.json")
    assert "Config not found" in str(e.value)


def test_no_path_means_defaults() -> None:
    assert load_session_config() == SessionConfig()


@pytest.mark.parametrize(
    ("tier", "duration", "enemy_penalty"),
    [
        (DifficultyTier.tier1, 30, 8),
        (DifficultyTier.tier2, 60, 15),
        ("tier3", 90, 25),
    ],
)
def test_difficulty_presets(tier: DifficultyTier | str, duration: int, enemy_penalty: float) -> None:
    cfg = config_for_tier(tier)
    assert cfg.duration_seconds == duration
    assert cfg.miss_penalties.enemy_get_through == enemy_penalty


def test_unknown_tier_raises() -> None:
    with pytest.raises(ValueError):
        config_for_tier("tier9")


@pytest.mark.parametrize(("low", "high"), [(95, 5), (50, 50)])
def test_terminal_bounds_must_not_cross(low: float, high: float) -> None:
    with pytest.raises(ValidationError) as e:
        SessionConfig.model_validate({"terminal": {"low": low, "high": high}})
    assert "terminal low bound" in str(e.value)


def test_terminal_bound_may_be_disabled() -> None:
    cfg = SessionConfig.model_validate({"terminal": {"low": None, "high": 3}})
    assert cfg.terminal.high == 3
