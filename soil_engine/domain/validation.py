from __future__ import annotations

from typing import List, Optional

from ..schemas import SensorPacket, SensorPayload, ValidationResult
from .constants import (
    ALGORITHM_CONSTANTS,
    CRITICAL_BATTERY_FLAG,
    OUT_OF_RANGE_SUFFIX,
    AlgorithmConstants,
    RangeLimit,
)


def _flag_if_out_of_range(
    flags: List[str], value: Optional[float], key: str, limit: RangeLimit
) -> None:
    if value is None:
        return
    if not limit.contains(value):
        flags.append(f"{key}{OUT_OF_RANGE_SUFFIX}")


def is_hard_violation(flag: str) -> bool:
    return flag.endswith(OUT_OF_RANGE_SUFFIX)


def validate_packet(
    payload: SensorPayload,
    constants: AlgorithmConstants = ALGORITHM_CONSTANTS,
) -> ValidationResult:
    """
    Check every present reading against its physical range.

    Range violations invalidate the payload. A critical battery is only a soft
    flag: it is reported but does not affect ``is_valid``.
    """
    ranges = constants.ranges
    flags: List[str] = []

    _flag_if_out_of_range(flags, payload.volumetric_water_content, "moisture", ranges.moisture)
    _flag_if_out_of_range(flags, payload.electrical_conductivity, "ec", ranges.ec)
    _flag_if_out_of_range(flags, payload.temperature, "temp", ranges.temp)
    _flag_if_out_of_range(flags, payload.ph, "ph", ranges.ph)

    battery = payload.battery
    if battery is not None and battery < constants.thresholds.battery.critical:
        flags.append(CRITICAL_BATTERY_FLAG)

    is_valid = not any(is_hard_violation(flag) for flag in flags)
    return ValidationResult(
        is_valid=is_valid,
        flags=flags,
        status="valid" if is_valid else "invalid",
    )


def apply_validation(
    packet: SensorPacket,
    constants: AlgorithmConstants = ALGORITHM_CONSTANTS,
) -> SensorPacket:
    """Return a copy of ``packet`` carrying the validator's flags and status."""
    return stamp_packet(packet, validate_packet(packet.payload, constants))


def stamp_packet(packet: SensorPacket, result: ValidationResult) -> SensorPacket:
    return packet.model_copy(
        update={"validation_flags": list(result.flags), "status": result.status}
    )
