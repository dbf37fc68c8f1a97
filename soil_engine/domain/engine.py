"""
Tier A soil scoring: fixed heuristics turning one sensor payload into a
0-100 health score and a ranked list of remediation recommendations.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import List, Optional, Tuple

from ..observability.logging_utils import log_event
from ..schemas import (
    MoistureStatus,
    Recommendation,
    SensorPacket,
    SensorPayload,
    SoilAnalysis,
    ValidationResult,
)
from .constants import (
    ALGORITHM_CONSTANTS,
    DEFAULT_CROP_TYPE,
    PRIORITY_ORDER,
    AlgorithmConstants,
)
from .identifiers import generate_uuid
from .validation import validate_packet


BASELINE_SCORE = 100

MOISTURE_DEFICIT_PENALTY = -20
MOISTURE_EXCESS_PENALTY = -10
SALINITY_PENALTY = -30
PH_PENALTY = -15
TEMPERATURE_PENALTY = -10
BATTERY_PENALTY = -5

OPTIMAL_EXPLANATION = "Soil conditions and sensor health are optimal."


_FIXED_NOTATION_LIMIT = 1e21
_WIDE_CONTEXT = Context(prec=64)


def _format_reading(value: float) -> str:
    """Shortest round-trip text for a reading, laid out the way JavaScript prints numbers."""
    number = float(value)
    if number == 0:
        return "0"
    _sign, digit_tuple, exponent = Decimal(repr(abs(number))).normalize().as_tuple()
    digits = "".join(str(digit) for digit in digit_tuple)
    prefix = "-" if number < 0 else ""
    k = len(digits)
    # n: position of the decimal point relative to the first digit
    n = k + exponent

    if k <= n <= 21:
        return f"{prefix}{digits}{'0' * (n - k)}"
    if 0 < n <= 21:
        return f"{prefix}{digits[:n]}.{digits[n:]}"
    if -6 < n <= 0:
        return f"{prefix}0.{'0' * -n}{digits}"
    power = n - 1
    mantissa = digits if k == 1 else f"{digits[0]}.{digits[1:]}"
    return f"{prefix}{mantissa}e{'+' if power > 0 else '-'}{abs(power)}"


def _to_fixed(value: float, digits: int) -> str:
    # half-up on the exact binary value, like JavaScript's toFixed
    if abs(value) >= _FIXED_NOTATION_LIMIT:
        return _format_reading(value)
    quantum = Decimal(1).scaleb(-digits)
    return str(
        Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP, context=_WIDE_CONTEXT)
    )


def _evaluate_moisture(
    moisture: Optional[float],
    constants: AlgorithmConstants,
    recommendations: List[Recommendation],
) -> Tuple[MoistureStatus, int]:
    if moisture is None:
        return "optimal", 0
    thresholds = constants.thresholds.moisture

    if moisture < thresholds.deficit:
        deficit = thresholds.target - moisture
        water_mm = math.ceil(deficit * constants.dosage.water_per_percent_deficit)
        recommendations.append(
            Recommendation(
                action="Initiate Irrigation",
                priority="high",
                rationale=(
                    f"Moisture ({_format_reading(moisture)}%) critical. "
                    f"Target: {_format_reading(thresholds.target)}%."
                ),
                confidence=0.95,
                dosage=f"Apply {water_mm}mm water",
            )
        )
        return "deficit", MOISTURE_DEFICIT_PENALTY

    if moisture > thresholds.excess:
        recommendations.append(
            Recommendation(
                action="Pause Irrigation",
                priority="medium",
                rationale=(
                    f"Moisture ({_format_reading(moisture)}%) indicates saturation risk. "
                    f"Upper limit: {_format_reading(thresholds.excess)}%."
                ),
                confidence=0.9,
                dosage="Skip next scheduled cycle",
            )
        )
        return "excess", MOISTURE_EXCESS_PENALTY

    return "optimal", 0


def _evaluate_electrical_conductivity(
    ec: Optional[float],
    constants: AlgorithmConstants,
    recommendations: List[Recommendation],
) -> int:
    risk = constants.thresholds.ec_risk
    if ec is None or ec <= risk:
        return 0
    recommendations.append(
        Recommendation(
            action="Flush Soil",
            priority="high",
            rationale=(
                f"EC ({_format_reading(ec)} dS/m) indicates high salinity stress risk. "
                f"Risk threshold: {_format_reading(risk)} dS/m."
            ),
            confidence=0.85,
            dosage="Apply leaching fraction (+15% water)",
        )
    )
    return SALINITY_PENALTY


def _evaluate_ph(
    ph: Optional[float],
    constants: AlgorithmConstants,
    recommendations: List[Recommendation],
) -> int:
    if ph is None:
        return 0
    thresholds = constants.thresholds.ph
    target = _format_reading(thresholds.target)

    if ph < thresholds.acidic:
        lime_tons = _to_fixed(
            (thresholds.target - ph) * constants.dosage.lime_per_ph_deficit, 1
        )
        recommendations.append(
            Recommendation(
                action="Apply Lime",
                priority="medium",
                rationale=f"pH ({_format_reading(ph)}) is too acidic. Target: {target}.",
                confidence=0.8,
                dosage=f"Apply {lime_tons} tons/ha",
            )
        )
        return PH_PENALTY

    if ph > thresholds.alkaline:
        sulfur_tons = _to_fixed(
            (ph - thresholds.target) * constants.dosage.sulfur_per_ph_excess, 1
        )
        recommendations.append(
            Recommendation(
                action="Apply Sulfur",
                priority="medium",
                rationale=f"pH ({_format_reading(ph)}) is too alkaline. Target: {target}.",
                confidence=0.8,
                dosage=f"Apply {sulfur_tons} tons/ha",
            )
        )
        return PH_PENALTY

    return 0


def _evaluate_temperature(
    temperature: Optional[float],
    constants: AlgorithmConstants,
    recommendations: List[Recommendation],
) -> int:
    if temperature is None:
        return 0
    band = constants.thresholds.temperature
    if band.stress_low <= temperature <= band.stress_high:
        return 0
    recommendations.append(
        Recommendation(
            action="Adjust Microclimate",
            priority="medium",
            rationale=(
                f"Temperature ({_format_reading(temperature)}°C) is outside ideal range "
                f"({_format_reading(band.stress_low)}-{_format_reading(band.stress_high)}°C)."
            ),
            confidence=0.82,
            dosage="Increase shading/ventilation or delay irrigation",
        )
    )
    return TEMPERATURE_PENALTY


def _evaluate_battery(
    battery: Optional[float],
    constants: AlgorithmConstants,
    recommendations: List[Recommendation],
) -> int:
    low = constants.thresholds.battery.low
    if battery is None or battery >= low:
        return 0
    recommendations.append(
        Recommendation(
            action="Sensor Maintenance",
            priority="low",
            rationale=(
                f"Battery level low ({_to_fixed(battery * 100, 0)}%). "
                f"Replace below {_to_fixed(low * 100, 0)}% to avoid data loss."
            ),
            confidence=0.99,
            dosage="Replace battery unit",
        )
    )
    return BATTERY_PENALTY


def clamp_score(value: float) -> int:
    return max(0, min(100, int(math.floor(value + 0.5))))


def sort_recommendations(recommendations: List[Recommendation]) -> List[Recommendation]:
    """Order by priority, high first; equal priorities keep their order."""
    return sorted(recommendations, key=lambda item: -PRIORITY_ORDER[item.priority])


def build_explanation(count: int) -> str:
    if count <= 0:
        return OPTIMAL_EXPLANATION
    noun = "item" if count == 1 else "items"
    return f"{count} actionable {noun} identified using Tier A heuristics."


def _failed_analysis(
    packet: SensorPacket, crop_type: str, validation: ValidationResult
) -> SoilAnalysis:
    flags = ", ".join(validation.flags) or "unknown validation error"
    log_event(
        "soil_analysis_rejected",
        packet_id=packet.id,
        sensor_id=packet.sensor_id,
        flags=validation.flags,
    )
    return SoilAnalysis(
        id=generate_uuid(),
        packet_id=packet.id,
        created_at=datetime.now(timezone.utc),
        status="failed",
        crop_type=crop_type,
        soil_health_score=0,
        moisture_status="optimal",
        recommendations=[],
        explanation=f"Invalid packet: {flags}",
    )


def score_payload(
    payload: SensorPayload,
    constants: AlgorithmConstants = ALGORITHM_CONSTANTS,
) -> Tuple[int, MoistureStatus, List[Recommendation]]:
    """
    Run every evaluator over an already validated payload.

    Returns the clamped score, the moisture status and the sorted
    recommendations.
    """
    recommendations: List[Recommendation] = []

    moisture_status, score_delta = _evaluate_moisture(
        payload.volumetric_water_content, constants, recommendations
    )
    score_delta += _evaluate_electrical_conductivity(
        payload.electrical_conductivity, constants, recommendations
    )
    score_delta += _evaluate_ph(payload.ph, constants, recommendations)
    score_delta += _evaluate_temperature(payload.temperature, constants, recommendations)
    score_delta += _evaluate_battery(payload.battery, constants, recommendations)

    score = clamp_score(BASELINE_SCORE + score_delta)
    return score, moisture_status, sort_recommendations(recommendations)


def generate_analysis(
    packet: SensorPacket,
    crop_type: str = DEFAULT_CROP_TYPE,
    *,
    constants: AlgorithmConstants = ALGORITHM_CONSTANTS,
) -> SoilAnalysis:
    """
    Produce the soil analysis for one packet.

    The payload is re-validated first; range violations yield a ``failed``
    analysis with score 0 instead of an exception. The packet is never
    modified.
    """
    validation = validate_packet(packet.payload, constants)
    if not validation.is_valid:
        return _failed_analysis(packet, crop_type, validation)

    score, moisture_status, recommendations = score_payload(packet.payload, constants)
    return SoilAnalysis(
        id=generate_uuid(),
        packet_id=packet.id,
        created_at=datetime.now(timezone.utc),
        status="completed",
        crop_type=crop_type,
        soil_health_score=score,
        moisture_status=moisture_status,
        recommendations=recommendations,
        explanation=build_explanation(len(recommendations)),
    )


class SoilAnalysisEngine:
    """Validator and scorer bound to one immutable set of constants."""

    def __init__(self, constants: AlgorithmConstants = ALGORITHM_CONSTANTS) -> None:
        self.constants = constants

    def validate_packet(self, payload: SensorPayload) -> ValidationResult:
        return validate_packet(payload, self.constants)

    def generate_analysis(
        self, packet: SensorPacket, crop_type: str = DEFAULT_CROP_TYPE
    ) -> SoilAnalysis:
        return generate_analysis(packet, crop_type, constants=self.constants)
