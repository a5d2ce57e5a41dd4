"""
World Weather Online Provider for Smart Meteo

The premium weather.ashx endpoint returns current conditions, a multi-day
forecast with 1-hourly steps and an astronomy block in one response, which
makes WWO the main enrichment source for daily/hourly/astronomy data.

Quirks handled here:
- every number is a string ("12", "0.3")
- hourly `time` is "0", "100", ... "2300" (HHMM without padding)
- sunrise/sunset are 12-hour clock strings ("07:12 AM")
- wind is km/h (converted to m/s)
"""

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from smart_meteo.astronomy import moon_phase_for, twelve_hour_to_iso
from smart_meteo.models import Astronomy, DailySummary, HourlySummary, NormalizedReading
from smart_meteo.providers.base import WeatherProvider, as_float, dig, kmh_to_ms

logger = logging.getLogger(__name__)

FORECAST_DAYS = 3


def _description(block: Any) -> Optional[str]:
    return dig(block, "weatherDesc", 0, "value")


def hourly_time(date_str: str, raw: Any) -> str:
    """Turn WWO's HHMM slot ("200") into an ISO local time on `date_str`."""
    padded = str(raw or "0").zfill(4)
    return f"{date_str}T{padded[:2]}:{padded[2:]}:00"


class WorldWeatherOnlineProvider(WeatherProvider):
    """Connector for api.worldweatheronline.com premium weather."""

    source_id = "worldweatheronline"
    display_name = "World Weather Online"
    URL = "https://api.worldweatheronline.com/premium/v1/weather.ashx"

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key if api_key is not None else os.getenv("WORLDWEATHER_KEY")

    async def _fetch(self, latitude: float, longitude: float) -> NormalizedReading:
        api_key = self._require(self.api_key, "WORLDWEATHER_KEY")
        params = {
            "key": api_key,
            "q": f"{latitude},{longitude}",
            "format": "json",
            "num_of_days": FORECAST_DAYS,
            "fx": "yes",
            "cc": "yes",
            "mca": "no",
            "tp": 1,
        }

        async with self._client() as client:
            payload = await self._get_json(client, self.URL, params=params)

        data = dig(payload, "data")
        current = dig(data, "current_condition", 0)
        if not isinstance(current, dict):
            raise self._malformed("missing current_condition")

        days: List[Dict[str, Any]] = [d for d in (data.get("weather") or []) if isinstance(d, dict)]

        return self._reading(
            latitude, longitude,
            # WWO's current block has no timestamp of its own
            observed_at=datetime.now(timezone.utc).isoformat(),
            temperature=current.get("temp_C"),
            feels_like=current.get("FeelsLikeC"),
            humidity=current.get("humidity"),
            wind_speed=kmh_to_ms(current.get("windspeedKmph")),
            wind_direction=current.get("winddirDegree"),
            wind_gust=kmh_to_ms(current.get("WindGustKmph")),
            pressure=current.get("pressure"),
            condition_text=_description(current),
            precipitation_intensity=current.get("precipMM"),
            daily=self._parse_daily(days),
            hourly=self._parse_hourly(days[0] if days else None),
            astronomy=self._parse_astronomy(days[0] if days else None),
        )

    def _parse_daily(self, days: List[Dict[str, Any]]) -> List[DailySummary]:
        result = []
        for day in days:
            if not day.get("date"):
                continue
            hours = day.get("hourly") or []
            # Midday slot is the most representative single description
            midday = hours[len(hours) // 2] if hours else None
            rain_chances = [v for v in (as_float(h.get("chanceofrain")) for h in hours) if v is not None]
            result.append(DailySummary(
                date=day["date"],
                temp_max=day.get("maxtempC"),
                temp_min=day.get("mintempC"),
                precipitation_probability=max(rain_chances, default=None),
                condition_text=_description(midday),
            ))
        return result

    def _parse_hourly(self, day: Optional[Dict[str, Any]]) -> List[HourlySummary]:
        if not day or not day.get("date"):
            return []
        return [
            HourlySummary(
                time=hourly_time(day["date"], h.get("time")),
                temperature=h.get("tempC"),
                precipitation_probability=h.get("chanceofrain"),
                condition_text=_description(h),
            )
            for h in (day.get("hourly") or [])
            if isinstance(h, dict)
        ]

    def _parse_astronomy(self, day: Optional[Dict[str, Any]]) -> Optional[Astronomy]:
        astro = dig(day, "astronomy", 0)
        if not isinstance(astro, dict) or not day.get("date"):
            return None
        date_str = day["date"]
        return Astronomy(
            sunrise=twelve_hour_to_iso(date_str, astro.get("sunrise", "")),
            sunset=twelve_hour_to_iso(date_str, astro.get("sunset", "")),
            moon_phase=moon_phase_for(date_str),
        )
