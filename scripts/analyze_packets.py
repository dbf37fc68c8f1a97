from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from soil_engine.application.services.soil_analysis_service import analyze_packets  # noqa: E402
from soil_engine.infra.config import get_config  # noqa: E402
from soil_engine.observability.logging_utils import init_logging, trace_scope  # noqa: E402
from soil_engine.schemas import SensorPacket  # noqa: E402


def _resolve_path(value: str, *, must_exist: bool = False) -> Path:
    path = Path(value).expanduser()
    if must_exist and not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    return path


def _load_packets(path: Path) -> List[SensorPacket]:
    raw = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        raw = raw.get("packets", [])
    if not isinstance(raw, list):
        raise ValueError("Expected a JSON array of packets or {\"packets\": [...]}")
    return [SensorPacket.model_validate(item) for item in raw]


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Score a JSON file of sensor packets and print the soil analyses."
    )
    parser.add_argument("input", help="JSON file with a list of sensor packets")
    parser.add_argument(
        "--crop-type",
        default=None,
        help="crop grown on the farm (default: DEFAULT_CROP_TYPE)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="parallel workers (default: BATCH_MAX_WORKERS)",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="write the analyses to this file instead of stdout",
    )
    parser.add_argument(
        "--log-path",
        default=None,
        help="write structured logs to this file instead of stderr",
    )
    args = parser.parse_args()

    cfg = get_config()
    init_logging(log_path=args.log_path or cfg.log_path, level=cfg.log_level)
    packets = _load_packets(_resolve_path(args.input, must_exist=True))
    with trace_scope():
        analyses = analyze_packets(packets, args.crop_type, max_workers=args.workers)
    payload = json.dumps(
        [analysis.model_dump(mode="json") for analysis in analyses],
        ensure_ascii=False,
        indent=2,
    )
    if args.output:
        output = _resolve_path(args.output)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(payload + "\n", encoding="utf-8")
        failed = sum(1 for analysis in analyses if analysis.status == "failed")
        print(f"Analyzed {len(analyses)} packets ({failed} failed) -> {output}")
    else:
        print(payload)


if __name__ == "__main__":
    main()
