from .models import (
    AnalysisStatus,
    AnalyzePacketRequest,
    BatchAnalyzeRequest,
    BatchAnalyzeResponse,
    MoistureStatus,
    PacketValidationResponse,
    Priority,
    Recommendation,
    SensorPacket,
    SensorPayload,
    SoilAnalysis,
    SoilAnalysisListResponse,
    ValidationResult,
    ValidationStatus,
)

__all__ = [
    "AnalysisStatus",
    "AnalyzePacketRequest",
    "BatchAnalyzeRequest",
    "BatchAnalyzeResponse",
    "MoistureStatus",
    "PacketValidationResponse",
    "Priority",
    "Recommendation",
    "SensorPacket",
    "SensorPayload",
    "SoilAnalysis",
    "SoilAnalysisListResponse",
    "ValidationResult",
    "ValidationStatus",
]
