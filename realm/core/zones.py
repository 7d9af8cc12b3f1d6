from __future__ import annotations

from enum import StrEnum

from realm.config import ZoneThresholds


class StabilityZone(StrEnum):
    balanced = "balanced"
    warning_high = "warning-high"
    warning_low = "warning-low"
    critical_high = "critical-high"
    critical_low = "critical-low"

    @property
    def is_critical(self) -> bool:
        return self in (StabilityZone.critical_high, StabilityZone.critical_low)

    @property
    def is_warning(self) -> bool:
        return self in (StabilityZone.warning_high, StabilityZone.warning_low)


DEFAULT_THRESHOLDS = ZoneThresholds()


def classify(value: float, thresholds: ZoneThresholds = DEFAULT_THRESHOLDS) -> StabilityZone:
    """Map a stability value to its zone.

    Evaluation order matters at the boundaries: balanced first, then the
    critical bands, then the warning bands.
    """

    if thresholds.balanced.min <= value <= thresholds.balanced.max:
        return StabilityZone.balanced
    if value >= thresholds.critical_high.min:
        return StabilityZone.critical_high
    if value <= thresholds.critical_low.max:
        return StabilityZone.critical_low
    if value > thresholds.balanced.max:
        return StabilityZone.warning_high
    return StabilityZone.warning_low


def zone_color(zone: StabilityZone, thresholds: ZoneThresholds = DEFAULT_THRESHOLDS) -> str:
    if zone == StabilityZone.balanced:
        return thresholds.balanced.color
    if zone == StabilityZone.critical_high:
        return thresholds.critical_high.color
    if zone == StabilityZone.critical_low:
        return thresholds.critical_low.color
    if zone == StabilityZone.warning_high:
        return thresholds.warning_high.color
    return thresholds.warning_low.color
