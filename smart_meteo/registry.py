"""
Source Registry for Smart Meteo

Single source of truth for which weather providers are eligible for
aggregation, plus last-call telemetry (latency, last error).

Descriptors are created once at startup from a fixed catalogue. Only three
things ever change afterwards: `active`, `last_error` and `last_latency_ms`.
Nothing is deleted at runtime.

INVARIANT: at least one descriptor stays active. It is enforced here, at the
mutation boundary, never inside the engine.
"""

import logging
import threading
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional

from smart_meteo.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class SourceDescriptor:
    """One registered weather provider."""
    id: str
    name: str
    weight: float
    active: bool = True
    description: str = ""
    last_error: Optional[str] = None
    last_latency_ms: Optional[int] = None

    def __post_init__(self):
        if self.weight is None or self.weight <= 0:
            raise ValueError(f"Source '{self.id}' weight must be positive, got {self.weight}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "weight": self.weight,
            "active": self.active,
            "description": self.description,
            "last_error": self.last_error,
            "last_latency_ms": self.last_latency_ms,
        }


# Default catalogue, weights tuned per provider reliability
DEFAULT_SOURCES: List[SourceDescriptor] = [
    SourceDescriptor("tomorrow.io", "Tomorrow.io", 1.2, True,
                     "Hyper-local nowcasting with minute-by-minute precision"),
    SourceDescriptor("open-meteo", "Open-Meteo", 1.1, True,
                     "High-resolution scientific data from national weather services"),
    SourceDescriptor("openweathermap", "OpenWeatherMap", 1.0, True,
                     "Global coverage baseline and fast fallback"),
    SourceDescriptor("weatherapi", "WeatherAPI", 1.0, True,
                     "Cross-validation for temperature and conditions"),
    SourceDescriptor("accuweather", "AccuWeather", 1.1, True,
                     "Quality-focused with RealFeel temperature"),
    SourceDescriptor("meteomatics", "Meteomatics", 1.2, False,
                     "Model-blended point forecasts"),
    SourceDescriptor("worldweatheronline", "World Weather Online", 1.0, False,
                     "Daily, hourly and astronomy enrichment"),
    SourceDescriptor("weatherstack", "Weatherstack", 0.9, False,
                     "Real-time current conditions"),
    SourceDescriptor("meteostat", "Meteostat", 0.8, False,
                     "Station observations (may lag real time)"),
    SourceDescriptor("met-no", "Met.no", 1.1, False,
                     "ECMWF-based forecasts from the Norwegian Meteorological Institute"),
]


def default_descriptors(active_ids: Optional[Iterable[str]] = None) -> List[SourceDescriptor]:
    """
    Fresh copies of the default catalogue.

    Args:
        active_ids: If given, exactly these ids start active (unknown ids ignored)
    """
    wanted = set(active_ids) if active_ids is not None else None
    descriptors = []
    for src in DEFAULT_SOURCES:
        active = src.active if wanted is None else src.id in wanted
        descriptors.append(SourceDescriptor(src.id, src.name, src.weight, active, src.description))
    return descriptors


class SourceRegistry:
    """
    In-memory registry of weather sources.

    Telemetry writes can arrive from many concurrently settling connector
    calls; each write replaces the (latency, error) pair under a lock, so a
    reader never sees half of one write. Last writer wins.
    """

    def __init__(self, descriptors: Optional[Iterable[SourceDescriptor]] = None):
        self._lock = threading.Lock()
        self._sources: Dict[str, SourceDescriptor] = {}

        for desc in (descriptors if descriptors is not None else default_descriptors()):
            if desc.id in self._sources:
                raise ValueError(f"Duplicate source id: {desc.id}")
            self._sources[desc.id] = replace(desc)

        if not self._sources:
            raise ValidationError("Registry needs at least one source")
        if not any(d.active for d in self._sources.values()):
            raise ValidationError("At least one source must be active")

        logger.info(f"[SourceRegistry] Loaded {len(self._sources)} sources, "
                    f"{len(self.active_ids())} active")

    def list(self) -> List[SourceDescriptor]:
        """Copies of all descriptors, in catalogue order."""
        with self._lock:
            return [replace(d) for d in self._sources.values()]

    def snapshot(self) -> List[Dict[str, Any]]:
        """Plain-dict copy of every descriptor, for display."""
        with self._lock:
            return [d.to_dict() for d in self._sources.values()]

    def get(self, source_id: str) -> SourceDescriptor:
        """Copy of one descriptor; edit through set_active/record_outcome only."""
        with self._lock:
            return replace(self._get_locked(source_id))

    def weight_of(self, source_id: str) -> float:
        return self.get(source_id).weight

    def active_ids(self) -> List[str]:
        """Ids the engine should fan out to, in catalogue order."""
        with self._lock:
            return [d.id for d in self._sources.values() if d.active]

    def set_active(self, source_id: str, active: bool) -> SourceDescriptor:
        """
        Enable or disable one source.

        Raises:
            NotFoundError: unknown id
            ValidationError: the change would leave zero active sources
        """
        with self._lock:
            desc = self._get_locked(source_id)
            if not isinstance(active, bool):
                raise ValidationError('Field "active" must be a boolean')
            if not active and desc.active:
                remaining = sum(1 for d in self._sources.values() if d.active)
                if remaining <= 1:
                    raise ValidationError(
                        "Cannot disable all sources. At least one must remain active."
                    )
            desc.active = active
            result = replace(desc)

        logger.info(f"[SourceRegistry] {source_id} active={active}")
        return result

    def record_outcome(self, source_id: str, latency_ms: int, error: Optional[str]) -> None:
        """Overwrite the telemetry pair of one source (no history is kept)."""
        with self._lock:
            desc = self._sources.get(source_id)
            if desc is None:
                logger.warning(f"[SourceRegistry] Telemetry for unknown source '{source_id}' dropped")
                return
            desc.last_latency_ms = int(latency_ms)
            desc.last_error = error

    def _get_locked(self, source_id: str) -> SourceDescriptor:
        desc = self._sources.get(source_id)
        if desc is None:
            raise NotFoundError(f"Source '{source_id}' not found")
        return desc

    def __contains__(self, source_id: str) -> bool:
        with self._lock:
            return source_id in self._sources

    def __len__(self) -> int:
        with self._lock:
            return len(self._sources)
