"""
Physical ranges, agronomic thresholds and dosage factors for soil scoring.

The values are grouped into frozen dataclasses so an engine can be handed a
complete, immutable set of constants. ``ALGORITHM_CONSTANTS`` is the default
set; ``with_temperature_band`` derives a copy with a different stress band.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional


@dataclass(frozen=True)
class RangeLimit:
    min: float
    max: float
    unit: str = ""

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max


@dataclass(frozen=True)
class SensorRanges:
    moisture: RangeLimit = RangeLimit(0, 60, "%")
    ec: RangeLimit = RangeLimit(0, 10, "dS/m")
    temp: RangeLimit = RangeLimit(-10, 60, "°C")
    ph: RangeLimit = RangeLimit(3.5, 9.5, "pH")


@dataclass(frozen=True)
class MoistureThresholds:
    deficit: float = 25
    target: float = 35
    excess: float = 45


@dataclass(frozen=True)
class PhThresholds:
    acidic: float = 5.5
    target: float = 6.5
    alkaline: float = 7.5


@dataclass(frozen=True)
class BatteryThresholds:
    low: float = 0.20
    critical: float = 0.10


@dataclass(frozen=True)
class TemperatureThresholds:
    stress_low: float = 5
    stress_high: float = 40


@dataclass(frozen=True)
class Thresholds:
    moisture: MoistureThresholds = MoistureThresholds()
    ec_risk: float = 4.0
    ph: PhThresholds = PhThresholds()
    battery: BatteryThresholds = BatteryThresholds()
    temperature: TemperatureThresholds = TemperatureThresholds()


@dataclass(frozen=True)
class DosageFactors:
    # mm of water per 1% moisture below target
    water_per_percent_deficit: float = 4
    # tons/ha per pH unit below target
    lime_per_ph_deficit: float = 1.2
    # tons/ha per pH unit above target
    sulfur_per_ph_excess: float = 0.8


@dataclass(frozen=True)
class AlgorithmConstants:
    ranges: SensorRanges = field(default_factory=SensorRanges)
    thresholds: Thresholds = field(default_factory=Thresholds)
    dosage: DosageFactors = field(default_factory=DosageFactors)

    def with_temperature_band(
        self,
        stress_low: Optional[float] = None,
        stress_high: Optional[float] = None,
    ) -> "AlgorithmConstants":
        band = self.thresholds.temperature
        new_band = TemperatureThresholds(
            stress_low=band.stress_low if stress_low is None else stress_low,
            stress_high=band.stress_high if stress_high is None else stress_high,
        )
        if new_band.stress_low >= new_band.stress_high:
            raise ValueError(
                f"Temperature stress band is empty: {new_band.stress_low} >= {new_band.stress_high}"
            )
        return replace(self, thresholds=replace(self.thresholds, temperature=new_band))


ALGORITHM_CONSTANTS = AlgorithmConstants()

PRIORITY_ORDER = {
    "high": 3,
    "medium": 2,
    "low": 1,
}

OUT_OF_RANGE_SUFFIX = "_out_of_range"
CRITICAL_BATTERY_FLAG = "critical_battery"
DEFAULT_CROP_TYPE = "Corn"
