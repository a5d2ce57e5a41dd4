"""
WeatherAPI.com Provider for Smart Meteo

Current conditions used for cross-validation of temperature and conditions.
Native wind/gust units are km/h (converted to m/s). The US-EPA index from the
air quality block fills `air_quality_index`.
"""

import logging
import os
from typing import Optional

from smart_meteo.models import NormalizedReading
from smart_meteo.providers.base import WeatherProvider, dig, kmh_to_ms

logger = logging.getLogger(__name__)


class WeatherAPIProvider(WeatherProvider):
    """Connector for api.weatherapi.com current.json."""

    source_id = "weatherapi"
    display_name = "WeatherAPI"
    URL = "https://api.weatherapi.com/v1/current.json"

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key if api_key is not None else os.getenv("WEATHERAPI_KEY")

    async def _fetch(self, latitude: float, longitude: float) -> NormalizedReading:
        api_key = self._require(self.api_key, "WEATHERAPI_KEY")
        params = {"key": api_key, "q": f"{latitude},{longitude}", "aqi": "yes"}

        async with self._client() as client:
            data = await self._get_json(client, self.URL, params=params)

        current = dig(data, "current")
        if not isinstance(current, dict):
            raise self._malformed("missing 'current' block")

        return self._reading(
            latitude, longitude,
            observed_at=current.get("last_updated") or dig(data, "location", "localtime"),
            temperature=current.get("temp_c"),
            feels_like=current.get("feelslike_c"),
            humidity=current.get("humidity"),
            wind_speed=kmh_to_ms(current.get("wind_kph")),
            wind_direction=current.get("wind_degree"),
            wind_gust=kmh_to_ms(current.get("gust_kph")),
            pressure=current.get("pressure_mb"),
            air_quality_index=dig(current, "air_quality", "us-epa-index"),
            condition_text=dig(current, "condition", "text"),
            precipitation_intensity=current.get("precip_mm"),
        )
