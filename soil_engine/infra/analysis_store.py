"""Record produced soil analyses so they can be listed and fetched later."""

from __future__ import annotations

import sqlite3
from collections import OrderedDict
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import List, Optional

from ..schemas import SoilAnalysis
from .config import get_config


class AnalysisStore:
    def save(self, analysis: SoilAnalysis) -> None:
        raise NotImplementedError

    def get(self, analysis_id: str) -> Optional[SoilAnalysis]:
        raise NotImplementedError

    def list_recent(self, limit: int = 50) -> List[SoilAnalysis]:
        raise NotImplementedError


class NoopAnalysisStore(AnalysisStore):
    def save(self, analysis: SoilAnalysis) -> None:
        return None

    def get(self, analysis_id: str) -> Optional[SoilAnalysis]:
        return None

    def list_recent(self, limit: int = 50) -> List[SoilAnalysis]:
        return []


class MemoryAnalysisStore(AnalysisStore):
    def __init__(self, max_items: int) -> None:
        self._max_items = max(1, int(max_items))
        self._items: "OrderedDict[str, SoilAnalysis]" = OrderedDict()
        self._lock = Lock()

    def save(self, analysis: SoilAnalysis) -> None:
        with self._lock:
            self._items.pop(analysis.id, None)
            self._items[analysis.id] = analysis
            while len(self._items) > self._max_items:
                self._items.popitem(last=False)

    def get(self, analysis_id: str) -> Optional[SoilAnalysis]:
        with self._lock:
            return self._items.get(analysis_id)

    def list_recent(self, limit: int = 50) -> List[SoilAnalysis]:
        if limit <= 0:
            return []
        with self._lock:
            items = list(self._items.values())
        return list(reversed(items))[:limit]


class SqliteAnalysisStore(AnalysisStore):
    def __init__(self, path: Path, max_items: int) -> None:
        self._path = path
        self._max_items = max(1, int(max_items))
        self._lock = Lock()
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self._path)

    def _init_db(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.execute(
                "CREATE TABLE IF NOT EXISTS soil_analyses ("
                "seq INTEGER PRIMARY KEY AUTOINCREMENT, "
                "id TEXT NOT NULL UNIQUE, "
                "packet_id TEXT NOT NULL, "
                "created_at TEXT NOT NULL, "
                "status TEXT NOT NULL, "
                "soil_health_score INTEGER NOT NULL, "
                "analysis_json TEXT NOT NULL)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_soil_analyses_packet "
                "ON soil_analyses (packet_id)"
            )

    def save(self, analysis: SoilAnalysis) -> None:
        with self._lock, self._connect() as conn:
            conn.execute("DELETE FROM soil_analyses WHERE id = ?", (analysis.id,))
            conn.execute(
                "INSERT INTO soil_analyses "
                "(id, packet_id, created_at, status, soil_health_score, analysis_json) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    analysis.id,
                    analysis.packet_id,
                    analysis.created_at.isoformat(),
                    analysis.status,
                    analysis.soil_health_score,
                    analysis.model_dump_json(),
                ),
            )
            conn.execute(
                "DELETE FROM soil_analyses WHERE seq NOT IN "
                "(SELECT seq FROM soil_analyses ORDER BY seq DESC LIMIT ?)",
                (self._max_items,),
            )

    def get(self, analysis_id: str) -> Optional[SoilAnalysis]:
        with self._lock, self._connect() as conn:
            row = conn.execute(
                "SELECT analysis_json FROM soil_analyses WHERE id = ?",
                (analysis_id,),
            ).fetchone()
        if not row:
            return None
        return SoilAnalysis.model_validate_json(row[0])

    def list_recent(self, limit: int = 50) -> List[SoilAnalysis]:
        if limit <= 0:
            return []
        with self._lock, self._connect() as conn:
            rows = conn.execute(
                "SELECT analysis_json FROM soil_analyses ORDER BY seq DESC LIMIT ?",
                (int(limit),),
            ).fetchall()
        return [SoilAnalysis.model_validate_json(row[0]) for row in rows]


def build_analysis_store() -> AnalysisStore:
    cfg = get_config()
    store = cfg.analysis_store or "memory"
    if store in {"off", "disabled", "none"}:
        return NoopAnalysisStore()
    if store == "sqlite":
        if cfg.analysis_store_path:
            path = Path(cfg.analysis_store_path)
        else:
            root = Path(__file__).resolve().parents[2]
            path = root / ".cache" / "soil_analyses.sqlite3"
        return SqliteAnalysisStore(path=path, max_items=cfg.analysis_store_max_items)
    return MemoryAnalysisStore(max_items=cfg.analysis_store_max_items)


@lru_cache(maxsize=1)
def get_analysis_store() -> AnalysisStore:
    return build_analysis_store()
