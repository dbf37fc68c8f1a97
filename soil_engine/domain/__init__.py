from __future__ import annotations

from typing import Any


_ENGINE_EXPORTS = {
    "SoilAnalysisEngine",
    "build_explanation",
    "clamp_score",
    "generate_analysis",
    "score_payload",
    "sort_recommendations",
}
_VALIDATION_EXPORTS = {
    "apply_validation",
    "is_hard_violation",
    "stamp_packet",
    "validate_packet",
}
_CONSTANT_EXPORTS = {
    "ALGORITHM_CONSTANTS",
    "AlgorithmConstants",
    "DEFAULT_CROP_TYPE",
}

__all__ = sorted(_ENGINE_EXPORTS | _VALIDATION_EXPORTS | _CONSTANT_EXPORTS)


def __getattr__(name: str) -> Any:
    if name in _ENGINE_EXPORTS:
        from . import engine as _engine

        return getattr(_engine, name)
    if name in _VALIDATION_EXPORTS:
        from . import validation as _validation

        return getattr(_validation, name)
    if name in _CONSTANT_EXPORTS:
        from . import constants as _constants

        return getattr(_constants, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
