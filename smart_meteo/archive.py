"""
Forecast Archive for Smart Meteo

Keeps a history of every aggregated response together with the per-source
readings that produced it. It is attached to the AggregationEngine as an
observer and only ever writes after a response has been assembled, so the
engine never reads from it: every aggregate() call still fetches live data.

Tables:
1. aggregations     - one row per successful cycle (consensus JSON payload)
2. source_readings  - one row per contributing source (its normalized reading)

Usage:
    from smart_meteo.archive import ForecastArchive

    archive = ForecastArchive(Path("smart_meteo.db"))
    engine.add_observer(archive)
    ...
    archive.latest(45.46, 9.19)
"""

import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from smart_meteo.models import AggregatedResponse, NormalizedReading

logger = logging.getLogger(__name__)

# Default database path (at project root)
DB_PATH = Path("smart_meteo.db")

# Coordinates are matched at ~1 km resolution
COORD_DECIMALS = 2


class ForecastArchive:
    """SQLite-backed store of aggregated responses."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path or DB_PATH
        logger.info(f"[ForecastArchive] Initializing with database: {self.db_path}")

        # Observers run in a worker thread; every use of the connection holds _lock
        self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self._lock = threading.Lock()
        self._init_db()

    def _init_db(self):
        cursor = self.conn.cursor()
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS aggregations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                latitude REAL NOT NULL,
                longitude REAL NOT NULL,
                generated_at TEXT NOT NULL,
                sources_used TEXT NOT NULL,       -- comma-separated registry ids
                payload TEXT NOT NULL             -- AggregatedResponse.to_dict() as JSON
            )
        ''')
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS source_readings (
                aggregation_id INTEGER NOT NULL REFERENCES aggregations(id),
                source TEXT NOT NULL,
                payload TEXT NOT NULL
            )
        ''')
        cursor.execute('''
            CREATE INDEX IF NOT EXISTS idx_aggregations_location
            ON aggregations(latitude, longitude, generated_at)
        ''')
        self.conn.commit()
        logger.debug("[ForecastArchive] Schema initialized")

    def record(self, response: AggregatedResponse, readings: Sequence[NormalizedReading]) -> bool:
        """
        Store one aggregation result and the readings behind it.

        The whole write is one transaction: any exception rolls back both
        tables, so a failed record never leaves a partial aggregation behind.

        Returns:
            True if stored, False on a database error
        """
        try:
            with self._lock, self.conn:
                aggregation_id = self._insert(response, readings)
        except sqlite3.Error as e:
            logger.error(f"[ForecastArchive] Failed to store aggregation: {e}")
            return False

        logger.info(f"[ForecastArchive] Stored aggregation #{aggregation_id} "
                    f"({len(readings)} readings: {', '.join(response.sources_used)})")
        return True

    def _insert(self, response: AggregatedResponse, readings: Sequence[NormalizedReading]) -> int:
        cursor = self.conn.cursor()
        cursor.execute('''
            INSERT INTO aggregations
            (latitude, longitude, generated_at, sources_used, payload)
            VALUES (?, ?, ?, ?, ?)
        ''', (
            response.latitude,
            response.longitude,
            response.generated_at,
            ",".join(response.sources_used),
            json.dumps(response.to_dict()),
        ))
        aggregation_id = cursor.lastrowid
        cursor.executemany('''
            INSERT INTO source_readings (aggregation_id, source, payload)
            VALUES (?, ?, ?)
        ''', [(aggregation_id, r.source, json.dumps(r.to_dict())) for r in readings])
        return aggregation_id

    def latest(self, latitude: float, longitude: float) -> Optional[Dict[str, Any]]:
        """Most recent stored response for a coordinate (rounded), or None."""
        with self._lock:
            row = self.conn.execute('''
                SELECT payload FROM aggregations
                WHERE ROUND(latitude, ?) = ROUND(?, ?) AND ROUND(longitude, ?) = ROUND(?, ?)
                ORDER BY generated_at DESC, id DESC
                LIMIT 1
            ''', (COORD_DECIMALS, latitude, COORD_DECIMALS,
                  COORD_DECIMALS, longitude, COORD_DECIMALS)).fetchone()
        return json.loads(row[0]) if row else None

    def readings_for(self, aggregation_id: int) -> List[Dict[str, Any]]:
        with self._lock:
            rows = self.conn.execute(
                "SELECT payload FROM source_readings WHERE aggregation_id = ?",
                (aggregation_id,),
            ).fetchall()
        return [json.loads(r[0]) for r in rows]

    def count(self) -> int:
        with self._lock:
            return self.conn.execute("SELECT COUNT(*) FROM aggregations").fetchone()[0]

    def close(self):
        """Close the database connection."""
        if self.conn:
            with self._lock:
                self.conn.close()
            logger.info("[ForecastArchive] Database connection closed")
