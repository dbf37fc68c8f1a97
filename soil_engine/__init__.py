"""
Soil sensor analysis engine: packet validation, Tier A soil-health scoring
and remediation recommendations.
"""

from soil_engine.domain.constants import ALGORITHM_CONSTANTS, AlgorithmConstants
from soil_engine.domain.engine import SoilAnalysisEngine, generate_analysis
from soil_engine.domain.validation import apply_validation, validate_packet
from soil_engine.schemas import (
    Recommendation,
    SensorPacket,
    SensorPayload,
    SoilAnalysis,
    ValidationResult,
)

__version__ = "1.0.0"
__all__ = [
    "ALGORITHM_CONSTANTS",
    "AlgorithmConstants",
    "Recommendation",
    "SensorPacket",
    "SensorPayload",
    "SoilAnalysis",
    "SoilAnalysisEngine",
    "ValidationResult",
    "apply_validation",
    "generate_analysis",
    "validate_packet",
]
