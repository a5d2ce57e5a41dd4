"""
Aggregation Engine for Smart Meteo

Fans out to every active provider, waits for ALL of them to settle, and merges
whatever succeeded into one consensus reading.

Cycle:
1. Read active ids from the SourceRegistry and resolve each to a connector
   (an id without a connector is a ConfigurationGap: it abstains, nothing crashes)
2. Call every connector concurrently; each call is timed and its outcome is
   written to registry telemetry. One slow or failing source never aborts or
   delays the others.
3. Barrier: no early exit on first success - the goal is maximum agreement,
   not minimum latency
4. Zero successes -> AggregateFailure (the only fatal outcome)
5. Weighted average per field, each field independently:
       sum(value * weight) / sum(weight) over sources that reported it
6. Dominant condition = code with the highest summed source weight
7. Dew point (Magnus) and 16-point wind compass from the averaged values
8. Daily merge by date: simple means + most frequent condition, max 7 days
9. Hourly and astronomy are passed through from the first source that has them

Tie-breaks (dominant condition, daily condition) go to the first code
encountered in active-id order. That is deterministic for a given registry
state, not a statement about which provider is better.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from smart_meteo.conditions import UNKNOWN
from smart_meteo.derived import compass_label, dew_point
from smart_meteo.errors import AggregateFailure, ConfigurationGap, SourceFailure
from smart_meteo.models import (
    AggregatedResponse,
    Astronomy,
    CurrentConditions,
    DailySummary,
    HourlySummary,
    NormalizedReading,
)
from smart_meteo.providers.base import WeatherProvider
from smart_meteo.registry import SourceRegistry
from smart_meteo.resilience import Stopwatch, as_source_failure

logger = logging.getLogger(__name__)


@dataclass
class SourceOutcome:
    """What one connector call produced in a cycle."""
    source: str
    latency_ms: int
    reading: Optional[NormalizedReading] = None
    failure: Optional[SourceFailure] = None

    @property
    def ok(self) -> bool:
        return self.reading is not None


def weighted_average(values: Sequence[Optional[float]], weights: Sequence[float]) -> Optional[float]:
    """
    Weighted mean rounded to one decimal, ignoring None values.

    A None value is dropped from BOTH the numerator and the denominator.
    Returns None when no value is present.
    """
    pairs = [(v, w) for v, w in zip(values, weights) if v is not None]
    if not pairs:
        return None
    vals = np.array([p[0] for p in pairs], dtype=float)
    wts = np.array([p[1] for p in pairs], dtype=float)
    return round(float(np.average(vals, weights=wts)), 1)


def simple_average(values: Sequence[Optional[float]]) -> Optional[float]:
    present = [v for v in values if v is not None]
    if not present:
        return None
    return round(float(np.mean(present)), 1)


def dominant_condition(codes: Sequence[Optional[str]], weights: Sequence[float]) -> str:
    """
    Condition code with the highest accumulated weight.

    Missing codes count as "unknown" and can win like any other code. Ties go
    to the code encountered first.
    """
    scores: Dict[str, float] = {}
    for code, weight in zip(codes, weights):
        key = code or UNKNOWN
        scores[key] = scores.get(key, 0.0) + weight

    best, best_score = UNKNOWN, -1.0
    for code, score in scores.items():
        if score > best_score:
            best, best_score = code, score
    return best


def most_frequent(codes: Sequence[Optional[str]]) -> str:
    """Unweighted mode of condition codes; first encountered wins ties."""
    return dominant_condition(codes, [1.0] * len(codes))


class AggregationEngine:
    """
    Weighted-consensus engine over N independent weather providers.

    The registry and the connector table are injected, so tests can build a
    fresh engine around fake providers. Observers (e.g. ForecastArchive) get
    the finished response; their failures are logged and never reach the
    caller.
    """

    # Fields averaged into the current block
    AVERAGED_FIELDS = (
        "temperature",
        "feels_like",
        "humidity",
        "wind_speed",
        "wind_direction",
        "wind_gust",
        "precipitation_probability",
        "air_quality_index",
    )

    MAX_DAILY_DAYS = 7

    def __init__(
        self,
        registry: SourceRegistry,
        providers: Mapping[str, WeatherProvider],
        observers: Optional[Sequence] = None,
        source_timeout: Optional[float] = None,
    ):
        self.registry = registry
        self.providers = dict(providers)
        self.observers = list(observers or [])
        self.source_timeout = source_timeout
        logger.info(f"[AggregationEngine] Initialized with {len(self.providers)} connectors, "
                    f"source_timeout={source_timeout}")

    def add_observer(self, observer) -> None:
        """Register an object with a `record(response, readings)` method."""
        self.observers.append(observer)

    async def aggregate(self, latitude: float, longitude: float) -> AggregatedResponse:
        """
        Run one aggregation cycle for a coordinate.

        Raises:
            AggregateFailure: every active source failed (or none could be called)
        """
        logger.info(f"[AggregationEngine] Starting cycle for ({latitude}, {longitude})...")

        outcomes = await self.collect(latitude, longitude)
        successes = [o for o in outcomes if o.ok]
        logger.debug(f"[AggregationEngine] Latencies (slowest first): {source_latencies(outcomes)}")

        if not successes:
            failures = {o.source: o.failure.message for o in outcomes if o.failure is not None}
            logger.error(f"[AggregationEngine] All {len(outcomes)} sources failed: {failures}")
            raise AggregateFailure(failures)

        logger.info(f"[AggregationEngine] Received {len(successes)} valid readings from: "
                    f"{', '.join(o.source for o in successes)}")

        readings = [o.reading for o in successes]
        weights = [self._weight(o.source) for o in successes]

        response = AggregatedResponse(
            latitude=latitude,
            longitude=longitude,
            generated_at=datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            sources_used=[o.source for o in successes],
            current=self.merge_current(readings, weights),
            daily=self.merge_daily(readings),
            hourly=self.pick_hourly(readings),
            astronomy=self.pick_astronomy(readings),
        )

        await self._notify(response, readings)
        return response

    async def collect(self, latitude: float, longitude: float) -> List[SourceOutcome]:
        """
        Fan out to every active source and wait for all of them.

        Outcomes come back in active-id order regardless of completion order.
        """
        active_ids = self.registry.active_ids()
        calls = []
        gaps: Dict[str, SourceOutcome] = {}

        for source_id in active_ids:
            provider = self.providers.get(source_id)
            if provider is None:
                gap = ConfigurationGap(source_id)
                logger.warning(f"[AggregationEngine] {source_id}: {gap.message}")
                self.registry.record_outcome(source_id, 0, gap.message)
                gaps[source_id] = SourceOutcome(source_id, 0, failure=gap)
                continue
            calls.append(self._call(source_id, provider, latitude, longitude))

        logger.info(f"[AggregationEngine] Dispatching {len(calls)} connectors concurrently")
        settled = iter(await asyncio.gather(*calls))

        return [gaps[sid] if sid in gaps else next(settled) for sid in active_ids]

    async def _call(
        self,
        source_id: str,
        provider: WeatherProvider,
        latitude: float,
        longitude: float,
    ) -> SourceOutcome:
        timer = Stopwatch()
        try:
            call = provider.fetch(latitude, longitude)
            if self.source_timeout is not None:
                reading = await asyncio.wait_for(call, timeout=self.source_timeout)
            else:
                reading = await call
        except Exception as e:
            failure = as_source_failure(source_id, e)
            latency = timer.elapsed_ms
            self.registry.record_outcome(source_id, latency, failure.message)
            logger.warning(f"[AggregationEngine] {source_id} abstained after {latency}ms: "
                           f"{failure.error_type} - {failure.message}")
            return SourceOutcome(source_id, latency, failure=failure)

        latency = timer.elapsed_ms
        self.registry.record_outcome(source_id, latency, None)
        logger.debug(f"[AggregationEngine] {source_id} OK in {latency}ms")
        return SourceOutcome(source_id, latency, reading=reading)

    def merge_current(self, readings: Sequence[NormalizedReading], weights: Sequence[float]) -> CurrentConditions:
        averaged = {
            name: weighted_average([getattr(r, name) for r in readings], weights)
            for name in self.AVERAGED_FIELDS
        }
        if averaged["precipitation_probability"] is None:
            averaged["precipitation_probability"] = 0.0

        condition = dominant_condition([r.condition_code for r in readings], weights)

        return CurrentConditions(
            **averaged,
            dew_point=dew_point(averaged["temperature"], averaged["humidity"]),
            wind_direction_label=compass_label(averaged["wind_direction"]),
            condition=condition,
            condition_text=condition.upper(),
        )

    def merge_daily(self, readings: Sequence[NormalizedReading]) -> List[DailySummary]:
        """Group daily entries by date across sources; max 7 dates, ascending."""
        by_date: Dict[str, List[DailySummary]] = {}
        for reading in readings:
            for day in reading.daily:
                if day.date:
                    by_date.setdefault(day.date, []).append(day)

        merged: List[DailySummary] = []
        for date_key in sorted(by_date)[:self.MAX_DAILY_DAYS]:
            entries = by_date[date_key]
            code = most_frequent([e.condition_code for e in entries])
            text = next((e.condition_text for e in entries
                         if (e.condition_code or UNKNOWN) == code and e.condition_text), None)
            merged.append(DailySummary(
                date=date_key,
                temp_max=simple_average([e.temp_max for e in entries]),
                temp_min=simple_average([e.temp_min for e in entries]),
                precipitation_probability=simple_average([e.precipitation_probability for e in entries]),
                condition_text=text,
                condition_code=code,
            ))
        return merged

    @staticmethod
    def pick_hourly(readings: Sequence[NormalizedReading]) -> List[HourlySummary]:
        for reading in readings:
            if reading.hourly:
                logger.debug(f"[AggregationEngine] Hourly data from {reading.source}")
                return list(reading.hourly)
        return []

    @staticmethod
    def pick_astronomy(readings: Sequence[NormalizedReading]) -> Optional[Astronomy]:
        for reading in readings:
            if reading.astronomy is not None:
                return reading.astronomy
        return None

    def _weight(self, source_id: str) -> float:
        return self.registry.weight_of(source_id)

    async def _notify(self, response: AggregatedResponse, readings: List[NormalizedReading]) -> None:
        # Observers may block (sqlite); keep them off the event loop
        for observer in self.observers:
            try:
                await asyncio.to_thread(observer.record, response, readings)
            except Exception as e:
                logger.error(f"[AggregationEngine] Observer {observer.__class__.__name__} failed "
                             f"(response still returned): {e}", exc_info=True)


def source_latencies(outcomes: Sequence[SourceOutcome]) -> List[Tuple[str, int]]:
    """(source, latency_ms) pairs, slowest first - for log summaries."""
    return sorted(((o.source, o.latency_ms) for o in outcomes), key=lambda p: p[1], reverse=True)
