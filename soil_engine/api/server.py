import logging
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..application.services.soil_analysis_service import (
    analyze_packet,
    analyze_packets,
    check_packet,
    get_soil_analysis,
    list_soil_analyses,
)
from ..infra.config import get_config
from ..observability.logging_utils import (
    init_logging,
    log_event,
    trace_scope,
)
from ..schemas import (
    AnalyzePacketRequest,
    BatchAnalyzeRequest,
    BatchAnalyzeResponse,
    PacketValidationResponse,
    SensorPacket,
    SoilAnalysis,
    SoilAnalysisListResponse,
)


_PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _error_log_path() -> Path:
    cfg = get_config()
    if cfg.api_error_log_path:
        return Path(cfg.api_error_log_path)
    return _PROJECT_ROOT / "api_errors.log"


@asynccontextmanager
async def lifespan(_: FastAPI):
    cfg = get_config()
    init_logging(log_path=cfg.log_path, level=cfg.log_level)
    yield


app = FastAPI(title="Soil Analysis Engine", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def _append_error_log(message: str, tb: str = "") -> None:
    timestamp = datetime.now(timezone.utc).isoformat()
    path = _error_log_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as handle:
            handle.write(f"[{timestamp}] {message}\n{tb}\n")
    except OSError as exc:
        log_event(
            "api_error_log_unwritable",
            level=logging.ERROR,
            path=str(path),
            error=str(exc),
        )


@app.middleware("http")
async def _trace_requests(request: Request, call_next):
    with trace_scope(request.headers.get("x-trace-id")) as trace_id:
        response = await call_next(request)
    response.headers["x-trace-id"] = trace_id
    return response


@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception):
    tb = traceback.format_exc()
    _append_error_log(f"Unhandled error at {request.url.path}: {exc}", tb)
    log_event(
        "api_unhandled_error",
        level=logging.ERROR,
        path=request.url.path,
        error=str(exc),
    )
    return JSONResponse(
        status_code=500,
        content={"detail": {"error": str(exc)}},
    )


@app.get("/health")
async def health():
    cfg = get_config()
    return {"status": "ok", "analysis_store": cfg.analysis_store}


@app.post("/api/v1/packets/validate", response_model=PacketValidationResponse)
def validate_packet_endpoint(packet: SensorPacket):
    validation, stamped = check_packet(packet)
    return PacketValidationResponse(validation=validation, packet=stamped)


@app.post("/api/v1/soil-analyses", response_model=SoilAnalysis)
def create_soil_analysis(request: AnalyzePacketRequest):
    return analyze_packet(request.packet, request.crop_type)


@app.post("/api/v1/soil-analyses/batch", response_model=BatchAnalyzeResponse)
def create_soil_analyses_batch(request: BatchAnalyzeRequest):
    analyses = analyze_packets(request.packets, request.crop_type)
    return BatchAnalyzeResponse(analyses=analyses, count=len(analyses))


@app.get("/api/v1/soil-analyses", response_model=SoilAnalysisListResponse)
def list_soil_analyses_endpoint(limit: int = Query(default=50, ge=1, le=500)):
    analyses = list_soil_analyses(limit)
    return SoilAnalysisListResponse(data=analyses, count=len(analyses), error=None)


@app.get("/api/v1/soil-analyses/{analysis_id}", response_model=SoilAnalysis)
def get_soil_analysis_endpoint(analysis_id: str):
    analysis = get_soil_analysis(analysis_id)
    if analysis is None:
        raise HTTPException(
            status_code=404, detail={"error": f"Soil analysis {analysis_id} not found"}
        )
    return analysis
