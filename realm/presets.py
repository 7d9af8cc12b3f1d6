from __future__ import annotations

from enum import StrEnum

from realm.config import MissPenalties, SessionConfig


class DifficultyTier(StrEnum):
    tier1 = "tier1"
    tier2 = "tier2"
    tier3 = "tier3"


# Tutorial, Challenge 1, Challenge 2.
_TIER_DURATIONS: dict[DifficultyTier, int] = {
    DifficultyTier.tier1: 30,
    DifficultyTier.tier2: 60,
    DifficultyTier.tier3: 90,
}

_TIER_PENALTIES: dict[DifficultyTier, MissPenalties] = {
    DifficultyTier.tier1: MissPenalties(enemy_get_through=8, ally_missed=3),
    DifficultyTier.tier2: MissPenalties(enemy_get_through=15, ally_missed=5),
    DifficultyTier.tier3: MissPenalties(enemy_get_through=25, ally_missed=8),
}


def config_for_tier(tier: DifficultyTier | str, *, base: SessionConfig | None = None) -> SessionConfig:
    """Return `base` (or the defaults) with the tier's duration and miss penalties."""

    t = DifficultyTier(tier)
    base = base if base is not None else SessionConfig()
    return base.model_copy(
        update={
            "duration_seconds": _TIER_DURATIONS[t],
            "miss_penalties": _TIER_PENALTIES[t],
        }
    )
