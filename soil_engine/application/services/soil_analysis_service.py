from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

from ...domain.constants import ALGORITHM_CONSTANTS, AlgorithmConstants
from ...domain.engine import SoilAnalysisEngine
from ...domain.validation import stamp_packet, validate_packet
from ...infra.analysis_store import AnalysisStore, get_analysis_store
from ...infra.config import AppConfig, get_config
from ...observability.logging_utils import (
    log_event,
    propagate_trace,
)
from ...schemas import SensorPacket, SoilAnalysis, ValidationResult


def build_algorithm_constants(cfg: Optional[AppConfig] = None) -> AlgorithmConstants:
    cfg = cfg or get_config()
    return ALGORITHM_CONSTANTS.with_temperature_band(
        cfg.temperature_stress_low, cfg.temperature_stress_high
    )


def build_engine(cfg: Optional[AppConfig] = None) -> SoilAnalysisEngine:
    return SoilAnalysisEngine(build_algorithm_constants(cfg))


def _resolve_crop_type(crop_type: Optional[str], cfg: AppConfig) -> str:
    if crop_type and crop_type.strip():
        return crop_type.strip()
    return cfg.default_crop_type


def check_packet(packet: SensorPacket) -> Tuple[ValidationResult, SensorPacket]:
    """Validate a packet and return the result with a stamped copy of the packet."""
    constants = build_algorithm_constants()
    result = validate_packet(packet.payload, constants)
    stamped = stamp_packet(packet, result)
    log_event(
        "packet_validated",
        packet_id=packet.id,
        status=result.status,
        flags=result.flags,
    )
    return result, stamped


def analyze_packet(
    packet: SensorPacket,
    crop_type: Optional[str] = None,
    *,
    engine: Optional[SoilAnalysisEngine] = None,
    store: Optional[AnalysisStore] = None,
) -> SoilAnalysis:
    """
    Run the soil engine on one packet and record the analysis.

    ``crop_type`` falls back to DEFAULT_CROP_TYPE; engine and store default
    to the ones built from the current configuration.
    """
    cfg = get_config()
    engine = engine or build_engine(cfg)
    store = store or get_analysis_store()

    started = time.perf_counter()
    analysis = engine.generate_analysis(packet, _resolve_crop_type(crop_type, cfg))
    latency_ms = int((time.perf_counter() - started) * 1000)
    store.save(analysis)
    log_event(
        "soil_analysis_generated",
        analysis_id=analysis.id,
        packet_id=packet.id,
        farm_id=packet.farm_id,
        status=analysis.status,
        score=analysis.soil_health_score,
        moisture_status=analysis.moisture_status,
        recommendations=len(analysis.recommendations),
        latency_ms=latency_ms,
    )
    return analysis


def analyze_packets(
    packets: Sequence[SensorPacket],
    crop_type: Optional[str] = None,
    *,
    max_workers: Optional[int] = None,
    store: Optional[AnalysisStore] = None,
) -> List[SoilAnalysis]:
    """Analyze packets in parallel; the result list follows the input order."""
    if not packets:
        return []
    cfg = get_config()
    engine = build_engine(cfg)
    store = store or get_analysis_store()
    workers = max(1, min(max_workers or cfg.batch_max_workers, len(packets)))

    @propagate_trace
    def _run(packet: SensorPacket) -> SoilAnalysis:
        return analyze_packet(packet, crop_type, engine=engine, store=store)

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(_run, packet) for packet in packets]
        analyses = [future.result() for future in futures]
    log_event(
        "soil_analysis_batch",
        packets=len(packets),
        workers=workers,
        failed=sum(1 for item in analyses if item.status == "failed"),
    )
    return analyses


def list_soil_analyses(
    limit: int = 50, *, store: Optional[AnalysisStore] = None
) -> List[SoilAnalysis]:
    store = store or get_analysis_store()
    return store.list_recent(limit)


def get_soil_analysis(
    analysis_id: str, *, store: Optional[AnalysisStore] = None
) -> Optional[SoilAnalysis]:
    store = store or get_analysis_store()
    return store.get(analysis_id)
