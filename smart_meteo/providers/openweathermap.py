"""
OpenWeatherMap Provider for Smart Meteo

Current weather from the 2.5 API in metric units (wind already m/s).
Global coverage baseline and a fast fallback when richer sources fail.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Optional

from smart_meteo.models import NormalizedReading
from smart_meteo.providers.base import WeatherProvider, dig

logger = logging.getLogger(__name__)


class OpenWeatherMapProvider(WeatherProvider):
    """Connector for api.openweathermap.org current weather."""

    source_id = "openweathermap"
    display_name = "OpenWeatherMap"
    URL = "https://api.openweathermap.org/data/2.5/weather"

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key if api_key is not None else os.getenv("OPENWEATHER_API_KEY")

    async def _fetch(self, latitude: float, longitude: float) -> NormalizedReading:
        api_key = self._require(self.api_key, "OPENWEATHER_API_KEY")
        params = {"lat": latitude, "lon": longitude, "appid": api_key, "units": "metric"}

        async with self._client() as client:
            data = await self._get_json(client, self.URL, params=params)

        main = dig(data, "main")
        if not isinstance(main, dict):
            raise self._malformed("missing 'main' block")

        observed_at = None
        if isinstance(data.get("dt"), (int, float)):
            observed_at = datetime.fromtimestamp(data["dt"], tz=timezone.utc).isoformat()

        return self._reading(
            latitude, longitude,
            observed_at=observed_at,
            temperature=main.get("temp"),
            feels_like=main.get("feels_like"),
            humidity=main.get("humidity"),
            pressure=main.get("pressure"),
            wind_speed=dig(data, "wind", "speed"),
            wind_direction=dig(data, "wind", "deg"),
            wind_gust=dig(data, "wind", "gust"),
            condition_text=dig(data, "weather", 0, "main"),
            precipitation_intensity=dig(data, "rain", "1h"),
        )
