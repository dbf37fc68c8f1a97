import importlib.util
import json
import os
import sys
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

_MISSING_PYDANTIC_SETTINGS = importlib.util.find_spec("pydantic_settings") is None

if not _MISSING_PYDANTIC_SETTINGS:
    from pydantic import ValidationError

    from soil_engine.application.services.soil_analysis_service import (
        analyze_packet,
        analyze_packets,
        build_algorithm_constants,
        check_packet,
        get_soil_analysis,
        list_soil_analyses,
    )
    from soil_engine.domain import validation as validation_module
    from soil_engine.domain.engine import generate_analysis
    from soil_engine.infra.analysis_store import (
        MemoryAnalysisStore,
        NoopAnalysisStore,
        SqliteAnalysisStore,
        get_analysis_store,
    )
    from soil_engine.infra.config import get_config
    from soil_engine.observability.logging_utils import EVENT_LOGGER_NAME, trace_scope
    from soil_engine.schemas import SensorPacket, SensorPayload


_ENV_KEYS = (
    "ANALYSIS_STORE",
    "ANALYSIS_STORE_MAX_ITEMS",
    "DEFAULT_CROP_TYPE",
    "TEMPERATURE_STRESS_LOW",
    "TEMPERATURE_STRESS_HIGH",
    "BATCH_MAX_WORKERS",
)


def _packet(packet_id: str = "pkt-1", **payload) -> "SensorPacket":
    return SensorPacket(
        id=packet_id,
        sensor_id="sensor-1",
        farm_id="farm-1",
        collected_at=datetime(2025, 6, 1, 6, 30, tzinfo=timezone.utc),
        payload=SensorPayload(**payload),
    )


class _EnvTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._env_backup = {key: os.environ.get(key) for key in _ENV_KEYS}
        for key in _ENV_KEYS:
            os.environ.pop(key, None)
        os.environ["ANALYSIS_STORE"] = "memory"
        self._reset_caches()

    def tearDown(self) -> None:
        for key, value in self._env_backup.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value
        self._reset_caches()

    @staticmethod
    def _reset_caches() -> None:
        get_config.cache_clear()
        get_analysis_store.cache_clear()


@unittest.skipUnless(
    not _MISSING_PYDANTIC_SETTINGS, "pydantic_settings is not installed"
)
class SoilAnalysisServiceTests(_EnvTestCase):
    def test_analyze_packet_records_analysis(self) -> None:
        analysis = analyze_packet(_packet(volumetric_water_content=10))

        self.assertEqual(analysis.status, "completed")
        self.assertEqual(analysis.crop_type, "Corn")
        self.assertEqual(get_soil_analysis(analysis.id), analysis)
        self.assertEqual([item.id for item in list_soil_analyses()], [analysis.id])

    def test_failed_analysis_is_recorded_too(self) -> None:
        analysis = analyze_packet(_packet(ph=15))
        self.assertEqual(analysis.status, "failed")
        self.assertEqual(get_soil_analysis(analysis.id).status, "failed")

    def test_default_crop_type_from_env(self) -> None:
        os.environ["DEFAULT_CROP_TYPE"] = "Wheat"
        self._reset_caches()

        self.assertEqual(analyze_packet(_packet(ph=6.5)).crop_type, "Wheat")
        self.assertEqual(analyze_packet(_packet(ph=6.5), "Barley").crop_type, "Barley")
        self.assertEqual(analyze_packet(_packet(ph=6.5), "  ").crop_type, "Wheat")

    def test_temperature_band_from_env(self) -> None:
        os.environ["TEMPERATURE_STRESS_HIGH"] = "30"
        self._reset_caches()

        analysis = analyze_packet(_packet(temperature=35))
        self.assertEqual(
            [item.action for item in analysis.recommendations], ["Adjust Microclimate"]
        )
        band = build_algorithm_constants().thresholds.temperature
        self.assertEqual((band.stress_low, band.stress_high), (5.0, 30.0))

    def test_inverted_temperature_band_is_rejected(self) -> None:
        os.environ["TEMPERATURE_STRESS_LOW"] = "45"
        self._reset_caches()
        with self.assertRaises(ValidationError):
            get_config()

    def test_check_packet_returns_stamped_copy(self) -> None:
        packet = _packet(temperature=80, battery=0.02)
        result, stamped = check_packet(packet)

        self.assertFalse(result.is_valid)
        self.assertEqual(stamped.status, "invalid")
        self.assertEqual(stamped.validation_flags, ["temp_out_of_range", "critical_battery"])
        self.assertEqual(packet.status, "pending")

    def test_check_packet_validates_once(self) -> None:
        service_path = "soil_engine.application.services.soil_analysis_service"
        with patch(
            f"{service_path}.validate_packet",
            wraps=validation_module.validate_packet,
        ) as service_validate, patch(
            "soil_engine.domain.validation.validate_packet",
            wraps=validation_module.validate_packet,
        ) as module_validate:
            result, stamped = check_packet(_packet(ph=15))

        self.assertEqual(service_validate.call_count + module_validate.call_count, 1)
        self.assertEqual(stamped.validation_flags, result.flags)
        self.assertEqual(stamped.status, result.status)

    def test_batch_events_carry_caller_trace(self) -> None:
        packets = [_packet(f"pkt-{index}", ph=6.5) for index in range(6)]
        with self.assertLogs(EVENT_LOGGER_NAME, level="INFO") as captured:
            with trace_scope("batch-trace-1"):
                analyze_packets(packets, max_workers=3)

        events = [json.loads(record.getMessage()) for record in captured.records]
        generated = [item for item in events if item["event"] == "soil_analysis_generated"]
        self.assertEqual(len(generated), 6)
        self.assertEqual({item["trace_id"] for item in events}, {"batch-trace-1"})

    def test_batch_preserves_input_order(self) -> None:
        packets = [
            _packet(f"pkt-{index}", volumetric_water_content=float(index * 6))
            for index in range(12)
        ]
        analyses = analyze_packets(packets, "Rice", max_workers=4)

        self.assertEqual([item.packet_id for item in analyses], [p.id for p in packets])
        self.assertTrue(all(item.crop_type == "Rice" for item in analyses))
        # 66% moisture is outside the physical range
        self.assertEqual(analyses[-1].status, "failed")
        self.assertEqual(len(list_soil_analyses(limit=100)), len(packets))

    def test_batch_matches_single_calls(self) -> None:
        packets = [
            _packet("a", volumetric_water_content=10, ph=4.5),
            _packet("b", electrical_conductivity=6.2, battery=0.1),
            _packet("c", ph=15),
        ]
        exclude = {"id", "created_at"}
        batch = analyze_packets(packets)
        for packet, analysis in zip(packets, batch):
            with self.subTest(packet=packet.id):
                self.assertEqual(
                    analysis.model_dump(exclude=exclude),
                    generate_analysis(packet).model_dump(exclude=exclude),
                )

    def test_empty_batch(self) -> None:
        self.assertEqual(analyze_packets([]), [])

    def test_disabled_store_keeps_nothing(self) -> None:
        os.environ["ANALYSIS_STORE"] = "Disabled"
        self._reset_caches()

        self.assertIsInstance(get_analysis_store(), NoopAnalysisStore)
        analysis = analyze_packet(_packet(ph=6.5))
        self.assertIsNone(get_soil_analysis(analysis.id))
        self.assertEqual(list_soil_analyses(), [])


@unittest.skipUnless(
    not _MISSING_PYDANTIC_SETTINGS, "pydantic_settings is not installed"
)
class AnalysisStoreTests(unittest.TestCase):
    def _analyses(self, count: int):
        base = datetime(2025, 6, 1, tzinfo=timezone.utc)
        return [
            generate_analysis(
                _packet(f"pkt-{index}", volumetric_water_content=20 + index)
            ).model_copy(update={"created_at": base + timedelta(minutes=index)})
            for index in range(count)
        ]

    def test_memory_store_evicts_oldest(self) -> None:
        store = MemoryAnalysisStore(max_items=2)
        first, second, third = self._analyses(3)
        for analysis in (first, second, third):
            store.save(analysis)

        self.assertIsNone(store.get(first.id))
        self.assertEqual([item.id for item in store.list_recent()], [third.id, second.id])
        self.assertEqual(store.list_recent(0), [])

    def test_sqlite_store_round_trip(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            store = SqliteAnalysisStore(Path(tmp) / "analyses.sqlite3", max_items=10)
            analyses = self._analyses(3)
            for analysis in analyses:
                store.save(analysis)
            store.save(analyses[0])

            self.assertEqual(store.get(analyses[1].id), analyses[1])
            self.assertIsNone(store.get("missing"))
            recent = store.list_recent(limit=2)
            self.assertEqual([item.id for item in recent], [analyses[0].id, analyses[2].id])
            self.assertEqual(len(store.list_recent(limit=10)), 3)

    def test_sqlite_store_trims_to_max_items(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            store = SqliteAnalysisStore(Path(tmp) / "analyses.sqlite3", max_items=2)
            analyses = self._analyses(4)
            for analysis in analyses:
                store.save(analysis)

            self.assertEqual(
                [item.id for item in store.list_recent(limit=10)],
                [analyses[3].id, analyses[2].id],
            )


if __name__ == "__main__":
    unittest.main()
