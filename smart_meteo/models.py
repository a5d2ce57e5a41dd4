"""
Data model for Smart Meteo.

Every provider connector maps its response into a NormalizedReading; the
aggregation engine merges those into an AggregatedResponse. Numeric fields are
either finite floats rounded to one decimal or None - NaN/inf never survive
construction, and missing upstream values stay None instead of becoming 0.
"""

import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from smart_meteo.conditions import normalize_condition


def clean_number(value: Any, digits: int = 1) -> Optional[float]:
    """Coerce a provider value to a rounded finite float, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return round(number, digits)


def clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass
class DailySummary:
    date: str
    temp_max: Optional[float] = None
    temp_min: Optional[float] = None
    precipitation_probability: Optional[float] = None
    condition_text: Optional[str] = None
    condition_code: Optional[str] = None

    def __post_init__(self):
        self.temp_max = clean_number(self.temp_max)
        self.temp_min = clean_number(self.temp_min)
        self.precipitation_probability = clean_number(self.precipitation_probability)
        self.condition_text = clean_text(self.condition_text)
        if self.condition_code is None:
            self.condition_code = normalize_condition(self.condition_text)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class HourlySummary:
    time: str
    temperature: Optional[float] = None
    precipitation_probability: Optional[float] = None
    condition_text: Optional[str] = None
    condition_code: Optional[str] = None

    def __post_init__(self):
        self.temperature = clean_number(self.temperature)
        self.precipitation_probability = clean_number(self.precipitation_probability)
        self.condition_text = clean_text(self.condition_text)
        if self.condition_code is None:
            self.condition_code = normalize_condition(self.condition_text)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Astronomy:
    sunrise: Optional[str] = None
    sunset: Optional[str] = None
    moon_phase: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# Fields run through clean_number() when a reading is built
READING_NUMERIC_FIELDS = (
    "temperature",
    "feels_like",
    "humidity",
    "wind_speed",
    "wind_direction",
    "wind_gust",
    "pressure",
    "air_quality_index",
    "precipitation_probability",
    "precipitation_intensity",
)


@dataclass
class NormalizedReading:
    """
    One provider's current-conditions snapshot in the common schema.

    Wind speeds are meters/second. `condition_code` is derived from
    `condition_text` through the condition normalizer unless the connector
    supplies it directly.
    """
    source: str
    latitude: float
    longitude: float
    observed_at: Optional[str] = None
    temperature: Optional[float] = None
    feels_like: Optional[float] = None
    humidity: Optional[float] = None
    wind_speed: Optional[float] = None
    wind_direction: Optional[float] = None
    wind_gust: Optional[float] = None
    pressure: Optional[float] = None
    air_quality_index: Optional[float] = None
    condition_text: Optional[str] = None
    condition_code: Optional[str] = None
    precipitation_probability: Optional[float] = None
    precipitation_intensity: Optional[float] = None
    daily: List[DailySummary] = field(default_factory=list)
    hourly: List[HourlySummary] = field(default_factory=list)
    astronomy: Optional[Astronomy] = None

    def __post_init__(self):
        for name in READING_NUMERIC_FIELDS:
            setattr(self, name, clean_number(getattr(self, name)))
        self.condition_text = clean_text(self.condition_text)
        if self.condition_code is None:
            self.condition_code = normalize_condition(self.condition_text)
        self.daily = list(self.daily or [])
        self.hourly = list(self.hourly or [])

    def is_empty(self) -> bool:
        """True when the reading carries no usable numeric value."""
        return all(getattr(self, name) is None for name in READING_NUMERIC_FIELDS)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["astronomy"] = self.astronomy.to_dict() if self.astronomy else None
        return data


@dataclass
class CurrentConditions:
    temperature: Optional[float] = None
    feels_like: Optional[float] = None
    humidity: Optional[float] = None
    wind_speed: Optional[float] = None
    wind_direction: Optional[float] = None
    wind_direction_label: Optional[str] = None
    wind_gust: Optional[float] = None
    dew_point: Optional[float] = None
    precipitation_probability: float = 0.0
    air_quality_index: Optional[float] = None
    condition: str = "unknown"
    condition_text: str = "UNKNOWN"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AggregatedResponse:
    latitude: float
    longitude: float
    generated_at: str
    sources_used: List[str]
    current: CurrentConditions
    daily: List[DailySummary] = field(default_factory=list)
    hourly: List[HourlySummary] = field(default_factory=list)
    astronomy: Optional[Astronomy] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "location": {"lat": self.latitude, "lon": self.longitude},
            "generated_at": self.generated_at,
            "sources_used": list(self.sources_used),
            "current": self.current.to_dict(),
            "daily": [d.to_dict() for d in self.daily],
            "hourly": [h.to_dict() for h in self.hourly],
            "astronomy": self.astronomy.to_dict() if self.astronomy else None,
        }
