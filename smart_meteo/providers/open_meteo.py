"""
Open-Meteo Provider for Smart Meteo

Open-Meteo needs no API key and blends national weather service models
(GFS, ICON, GEM, ...). It is the richest free source: current conditions,
hourly and daily forecasts plus sunrise/sunset in one request.

Weather codes are WMO interpretation codes, translated to text before the
condition normalizer runs. Wind is requested directly in m/s.
"""

import logging
from typing import Any, Dict, List, Optional

from smart_meteo.astronomy import moon_phase_for
from smart_meteo.conditions import WMO_CODES, code_to_text
from smart_meteo.models import Astronomy, DailySummary, HourlySummary, NormalizedReading
from smart_meteo.providers.base import WeatherProvider, dig

logger = logging.getLogger(__name__)

HOURLY_WINDOW = 24
DAILY_DAYS = 7


def weather_code_to_condition(code: Any) -> Optional[str]:
    """Convert WMO weather code to human-readable condition."""
    if code is None:
        return None
    return code_to_text(WMO_CODES, code) or f"Code {code}"


def _column(block: Dict[str, Any], name: str, i: int) -> Any:
    values = block.get(name) or []
    return values[i] if i < len(values) else None


class OpenMeteoProvider(WeatherProvider):
    """Connector for api.open-meteo.com (forecast endpoint)."""

    source_id = "open-meteo"
    display_name = "Open-Meteo"
    URL = "https://api.open-meteo.com/v1/forecast"

    async def _fetch(self, latitude: float, longitude: float) -> NormalizedReading:
        params = {
            "latitude": latitude,
            "longitude": longitude,
            "current": ",".join([
                "temperature_2m", "relative_humidity_2m", "apparent_temperature",
                "precipitation", "weather_code", "pressure_msl",
                "wind_speed_10m", "wind_direction_10m", "wind_gusts_10m",
            ]),
            "hourly": "temperature_2m,precipitation_probability,weather_code",
            "daily": ",".join([
                "weather_code", "temperature_2m_max", "temperature_2m_min",
                "precipitation_probability_max", "sunrise", "sunset",
            ]),
            "wind_speed_unit": "ms",
            "timezone": "auto",
            "forecast_days": DAILY_DAYS,
        }

        async with self._client() as client:
            data = await self._get_json(client, self.URL, params=params)

        current = dig(data, "current")
        if not isinstance(current, dict):
            raise self._malformed("missing 'current' block")

        current_time = current.get("time")
        hourly = self._parse_hourly(data.get("hourly") or {}, current_time)
        daily = self._parse_daily(data.get("daily") or {})
        astronomy = self._parse_astronomy(data.get("daily") or {})

        logger.debug(f"[OpenMeteoProvider] {len(hourly)} hourly, {len(daily)} daily records")

        return self._reading(
            latitude, longitude,
            observed_at=current_time,
            temperature=current.get("temperature_2m"),
            feels_like=current.get("apparent_temperature"),
            humidity=current.get("relative_humidity_2m"),
            wind_speed=current.get("wind_speed_10m"),
            wind_direction=current.get("wind_direction_10m"),
            wind_gust=current.get("wind_gusts_10m"),
            pressure=current.get("pressure_msl"),
            condition_text=weather_code_to_condition(current.get("weather_code")),
            precipitation_probability=hourly[0].precipitation_probability if hourly else None,
            precipitation_intensity=current.get("precipitation"),
            daily=daily,
            hourly=hourly,
            astronomy=astronomy,
        )

    def _parse_hourly(self, block: Dict[str, Any], current_time: Optional[str]) -> List[HourlySummary]:
        times = block.get("time") or []
        start = 0
        if current_time:
            # Hourly slots are "YYYY-MM-DDTHH:00"; start at the current hour
            hour_key = current_time[:13]
            start = next((i for i, t in enumerate(times) if t[:13] >= hour_key), len(times))

        result: List[HourlySummary] = []
        for i in range(start, min(start + HOURLY_WINDOW, len(times))):
            result.append(HourlySummary(
                time=times[i],
                temperature=_column(block, "temperature_2m", i),
                precipitation_probability=_column(block, "precipitation_probability", i),
                condition_text=weather_code_to_condition(_column(block, "weather_code", i)),
            ))
        return result

    def _parse_daily(self, block: Dict[str, Any]) -> List[DailySummary]:
        result: List[DailySummary] = []
        for i, date_str in enumerate((block.get("time") or [])[:DAILY_DAYS]):
            result.append(DailySummary(
                date=date_str,
                temp_max=_column(block, "temperature_2m_max", i),
                temp_min=_column(block, "temperature_2m_min", i),
                precipitation_probability=_column(block, "precipitation_probability_max", i),
                condition_text=weather_code_to_condition(_column(block, "weather_code", i)),
            ))
        return result

    def _parse_astronomy(self, block: Dict[str, Any]) -> Optional[Astronomy]:
        sunrise = _column(block, "sunrise", 0)
        sunset = _column(block, "sunset", 0)
        if not sunrise and not sunset:
            return None
        return Astronomy(sunrise=sunrise, sunset=sunset, moon_phase=moon_phase_for(sunrise or sunset))
