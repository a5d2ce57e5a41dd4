"""
Tomorrow.io Provider for Smart Meteo

Realtime endpoint, metric units (wind m/s). Tomorrow.io reports a numeric
weatherCode which is translated to text before normalization; it is one of
the few sources with a precipitation probability for "now".
"""

import logging
import os
from typing import Optional

from smart_meteo.conditions import TOMORROW_CODES, code_to_text
from smart_meteo.models import NormalizedReading
from smart_meteo.providers.base import WeatherProvider, dig

logger = logging.getLogger(__name__)


class TomorrowProvider(WeatherProvider):
    """Connector for api.tomorrow.io v4 realtime."""

    source_id = "tomorrow.io"
    display_name = "Tomorrow.io"
    URL = "https://api.tomorrow.io/v4/weather/realtime"

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key if api_key is not None else os.getenv("TOMORROW_API_KEY")

    async def _fetch(self, latitude: float, longitude: float) -> NormalizedReading:
        api_key = self._require(self.api_key, "TOMORROW_API_KEY")
        params = {"location": f"{latitude},{longitude}", "apikey": api_key, "units": "metric"}

        async with self._client() as client:
            data = await self._get_json(client, self.URL, params=params)

        values = dig(data, "data", "values")
        if not isinstance(values, dict):
            raise self._malformed("missing 'data.values'")

        code = values.get("weatherCode")
        return self._reading(
            latitude, longitude,
            observed_at=dig(data, "data", "time"),
            temperature=values.get("temperature"),
            feels_like=values.get("temperatureApparent"),
            humidity=values.get("humidity"),
            wind_speed=values.get("windSpeed"),
            wind_direction=values.get("windDirection"),
            wind_gust=values.get("windGust"),
            pressure=values.get("pressureSeaLevel"),
            condition_text=code_to_text(TOMORROW_CODES, code) or (f"Code: {code}" if code is not None else None),
            precipitation_probability=values.get("precipitationProbability"),
            precipitation_intensity=values.get("precipitationIntensity", values.get("rainIntensity")),
        )
