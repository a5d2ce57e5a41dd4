"""
Weatherstack Provider for Smart Meteo

Current conditions only (the free tier has no forecast endpoint and no HTTPS).
Weatherstack answers errors with HTTP 200 and an `error` object, so the body
is checked as well as the status code. Wind is km/h (converted to m/s).
"""

import logging
import os
from datetime import datetime, timezone
from typing import Optional

from smart_meteo.errors import SourceFailure
from smart_meteo.models import NormalizedReading
from smart_meteo.providers.base import WeatherProvider, dig, kmh_to_ms

logger = logging.getLogger(__name__)


class WeatherstackProvider(WeatherProvider):
    """Connector for api.weatherstack.com current."""

    source_id = "weatherstack"
    display_name = "Weatherstack"
    URL = "http://api.weatherstack.com/current"

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key if api_key is not None else os.getenv("WEATHERSTACK_KEY")

    async def _fetch(self, latitude: float, longitude: float) -> NormalizedReading:
        api_key = self._require(self.api_key, "WEATHERSTACK_KEY")
        params = {"access_key": api_key, "query": f"{latitude},{longitude}", "units": "m"}

        async with self._client() as client:
            data = await self._get_json(client, self.URL, params=params)

        if isinstance(data, dict) and data.get("error"):
            error_type = dig(data, "error", "type") or "unknown"
            raise SourceFailure(self.source_id, f"Weatherstack API error: {error_type}", "api_error")

        current = dig(data, "current")
        if not isinstance(current, dict):
            raise self._malformed("missing 'current' block")

        observed_at = None
        epoch = dig(data, "location", "localtime_epoch")
        if isinstance(epoch, (int, float)):
            observed_at = datetime.fromtimestamp(epoch, tz=timezone.utc).isoformat()

        return self._reading(
            latitude, longitude,
            observed_at=observed_at,
            temperature=current.get("temperature"),
            feels_like=current.get("feelslike"),
            humidity=current.get("humidity"),
            wind_speed=kmh_to_ms(current.get("wind_speed")),
            wind_direction=current.get("wind_degree"),
            pressure=current.get("pressure"),
            condition_text=dig(current, "weather_descriptions", 0),
            precipitation_intensity=current.get("precip"),
        )
