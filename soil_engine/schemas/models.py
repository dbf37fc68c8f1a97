from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


ValidationStatus = Literal["pending", "valid", "invalid"]
AnalysisStatus = Literal["processing", "completed", "failed"]
MoistureStatus = Literal["deficit", "optimal", "excess"]
Priority = Literal["high", "medium", "low"]


class SensorPayload(BaseModel):
    """Physical measurements carried by one sensor reading; every field is optional."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    volumetric_water_content: Optional[float] = Field(
        default=None, description="Volumetric water content in percent (0-60)."
    )
    electrical_conductivity: Optional[float] = Field(
        default=None, description="Bulk electrical conductivity in dS/m (0-10)."
    )
    temperature: Optional[float] = Field(
        default=None, description="Soil temperature in degrees Celsius (-10-60)."
    )
    ph: Optional[float] = Field(default=None, description="Soil pH (3.5-9.5).")
    battery: Optional[float] = Field(
        default=None, description="Remaining battery as a fraction (0.0-1.0)."
    )


class SensorPacket(BaseModel):
    """One timestamped reading from a field device, as delivered by ingestion."""

    model_config = ConfigDict(frozen=True)

    id: str
    sensor_id: str
    farm_id: str
    collected_at: datetime
    payload: SensorPayload = Field(default_factory=SensorPayload)
    validation_flags: List[str] = Field(default_factory=list)
    status: ValidationStatus = "pending"


class ValidationResult(BaseModel):
    """Outcome of checking a payload against the physical ranges."""

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    flags: List[str] = Field(default_factory=list)
    status: Literal["valid", "invalid"]


class Recommendation(BaseModel):
    """Single remediation action rendered to the client."""

    model_config = ConfigDict(frozen=True)

    action: str
    priority: Priority
    rationale: str = Field(
        ..., description="Justification quoting the triggering reading and its target."
    )
    confidence: float = Field(..., ge=0.0, le=1.0)
    dosage: Optional[str] = Field(
        default=None, description="Free-text quantity, e.g. 'Apply 100mm water'."
    )


class SoilAnalysis(BaseModel):
    """Derived soil-health assessment for one packet."""

    model_config = ConfigDict(frozen=True)

    id: str
    packet_id: str
    created_at: datetime
    status: AnalysisStatus
    crop_type: str
    soil_health_score: int = Field(..., ge=0, le=100)
    moisture_status: MoistureStatus = "optimal"
    recommendations: List[Recommendation] = Field(default_factory=list)
    explanation: str = ""


class AnalyzePacketRequest(BaseModel):
    """Request body for analyzing a single packet."""

    packet: SensorPacket
    crop_type: Optional[str] = Field(
        default=None, description="Crop grown on the farm; falls back to DEFAULT_CROP_TYPE."
    )


class BatchAnalyzeRequest(BaseModel):
    """Request body for analyzing several packets at once."""

    packets: List[SensorPacket] = Field(default_factory=list)
    crop_type: Optional[str] = None


class BatchAnalyzeResponse(BaseModel):
    analyses: List[SoilAnalysis] = Field(default_factory=list)
    count: int = 0


class PacketValidationResponse(BaseModel):
    """Validator outcome together with the packet stamped with it."""

    validation: ValidationResult
    packet: SensorPacket


class SoilAnalysisListResponse(BaseModel):
    """Listing of recorded analyses, newest first."""

    data: List[SoilAnalysis] = Field(default_factory=list)
    count: int = 0
    error: Optional[str] = None
